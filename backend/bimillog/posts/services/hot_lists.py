"""Read path for hot lists: cache first, repository on miss."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from redis.exceptions import RedisError

from bimillog.obs import metrics as obs_metrics
from bimillog.posts.domain import models
from bimillog.posts.domain import repo as repo_module
from bimillog.posts.domain.exceptions import BackendError, QueryValidationError
from bimillog.posts.infra.list_cache import ListCache
from bimillog.posts.infra.score_store import ScoreStore
from bimillog.posts.ranking.lists import HotList, HotListSpec, Source, build_registry
from bimillog.posts.ranking.refresh import compute_hot_list

_LOG = logging.getLogger(__name__)

# Postgres approximations used when the score store itself is unreachable.
_DB_WINDOW_HOURS = {
	HotList.REALTIME: 1,
	HotList.WEEKLY: 24 * 7,
}

MAX_LEGEND_PAGE_SIZE = 100


@dataclass(slots=True)
class HotListView:
	list_name: str
	items: list[models.ContentSummary] = field(default_factory=list)
	source: str = "cache"


class HotListService:
	"""Serve named hot lists for viewers."""

	def __init__(
		self,
		*,
		repository: repo_module.PostsRepository | None = None,
		store: ScoreStore | None = None,
		cache: ListCache | None = None,
		registry: dict[HotList, HotListSpec] | None = None,
	) -> None:
		self.repo = repository or repo_module.PostsRepository()
		self.store = store or ScoreStore()
		self.cache = cache or ListCache()
		self.registry = registry or build_registry()

	async def get_hot_list(self, name: HotList | str, viewer_id: Optional[int] = None) -> HotListView:
		hot_list = HotList.parse(name)
		spec = self.registry[hot_list]
		items = await self._read_cache(spec)
		source = "cache"
		if not items:
			items = await self._compute(spec)
			source = "fallback"
		if viewer_id is not None and items:
			items = await self._visible_items(items, viewer_id)
		return HotListView(list_name=hot_list.value, items=items, source=source)

	async def get_legend_page(
		self,
		page: int,
		size: int,
		viewer_id: Optional[int] = None,
	) -> models.Page[models.ContentSummary]:
		if page < 0:
			raise QueryValidationError("invalid_page")
		if size < 1 or size > MAX_LEGEND_PAGE_SIZE:
			raise QueryValidationError("invalid_page_size")
		view = await self.get_hot_list(HotList.LEGEND, viewer_id=viewer_id)
		start = page * size
		return models.Page(items=view.items[start : start + size], page=page, size=size, total=len(view.items))

	async def _read_cache(self, spec: HotListSpec) -> list[models.ContentSummary]:
		name = spec.name.value
		try:
			items = await self.cache.read_all(name)
		except (RedisError, OSError):
			obs_metrics.inc_hot_list_cache(name, "error")
			_LOG.warning("posts.hot_lists.cache_error", extra={"list": name}, exc_info=True)
			return []
		result = "hit" if items else "miss"
		obs_metrics.inc_hot_list_cache(name, result)
		_LOG.debug("posts.hot_lists.cache_" + result, extra={"list": name, "count": len(items)})
		return items

	async def _compute(self, spec: HotListSpec) -> list[models.ContentSummary]:
		name = spec.name.value
		try:
			items, _missing = await compute_hot_list(spec, store=self.store, repository=self.repo)
			return items
		except (RedisError, OSError) as exc:
			if spec.source is not Source.SCORE_STORE:
				_LOG.error("posts.hot_lists.fallback_failed", extra={"list": name}, exc_info=True)
				raise BackendError() from exc
			_LOG.warning("posts.hot_lists.score_store_unavailable", extra={"list": name})
		except Exception as exc:
			_LOG.error("posts.hot_lists.fallback_failed", extra={"list": name}, exc_info=True)
			raise BackendError() from exc
		try:
			return await self._from_database(spec)
		except Exception as exc:
			_LOG.error("posts.hot_lists.fallback_failed", extra={"list": name}, exc_info=True)
			raise BackendError() from exc

	async def _from_database(self, spec: HotListSpec) -> list[models.ContentSummary]:
		if spec.name is HotList.LEGEND:
			return await self.repo.most_liked(spec.cap, min_likes=int(spec.min_score or 0))
		return await self.repo.recent_popular(spec.cap, hours=_DB_WINDOW_HOURS.get(spec.name, 1))

	async def _visible_items(
		self,
		items: Sequence[models.ContentSummary],
		viewer_id: int,
	) -> list[models.ContentSummary]:
		authors = {item.member_id for item in items if item.member_id is not None and item.member_id != viewer_id}
		if not authors:
			return list(items)
		try:
			blocked = await self.repo.blocked_member_ids(viewer_id, authors)
		except Exception as exc:
			_LOG.error("posts.hot_lists.block_lookup_failed", extra={"viewer_id": viewer_id}, exc_info=True)
			raise BackendError() from exc
		if not blocked:
			return list(items)
		return [item for item in items if item.member_id not in blocked]


__all__ = ["HotListService", "HotListView"]
