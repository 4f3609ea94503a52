"""Periodic materialisation of hot lists into the list cache.

Each run walks IDLE -> FETCHING -> HYDRATING -> PUBLISHING -> IDLE. A run that
fails at any step, or exceeds its timeout, leaves the previously published list
in place; the next scheduled tick retries from scratch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from bimillog.obs import logging as obs_logging
from bimillog.obs import metrics as obs_metrics
from bimillog.posts.domain import models
from bimillog.posts.domain import repo as repo_module
from bimillog.posts.infra import notify
from bimillog.posts.infra.list_cache import ListCache
from bimillog.posts.infra.score_store import ScoreStore
from bimillog.posts.ranking.lists import HotListSpec, Source
from bimillog.settings import settings

_LOG = logging.getLogger(__name__)

FeaturedPublisher = Callable[..., Awaitable[None]]


class RefreshState(str, Enum):
	IDLE = "idle"
	FETCHING = "fetching"
	HYDRATING = "hydrating"
	PUBLISHING = "publishing"


class RefreshOutcome(str, Enum):
	PUBLISHED = "published"
	EMPTY = "empty"
	FAILED = "failed"
	SKIPPED = "skipped"


@dataclass(slots=True)
class RefreshResult:
	list_name: str
	outcome: RefreshOutcome
	published: int = 0
	missing: int = 0


async def fetch_ranked_ids(spec: HotListSpec, store: ScoreStore) -> list[int]:
	"""Top ``cap`` ids of a score-backed list, honouring its minimum score."""

	entries = await store.top_range(spec.score_key, 0, spec.cap - 1)
	if spec.min_score is not None:
		entries = [entry for entry in entries if entry.score >= spec.min_score]
	return [entry.item_id for entry in entries]


async def hydrate(
	spec: HotListSpec,
	ids: Sequence[int],
	repository: repo_module.PostsRepository,
) -> tuple[list[models.ContentSummary], list[int]]:
	summaries = await repository.batch_get_by_ids(list(ids))
	ordered, missing = models.order_by_ids(summaries, ids)
	if missing:
		obs_metrics.inc_hydration_misses(spec.name.value, len(missing))
		_LOG.info(
			"ranking.refresh.hydration_missing",
			extra={"list": spec.name.value, "missing": len(missing)},
		)
	return ordered, missing


async def compute_hot_list(
	spec: HotListSpec,
	*,
	store: ScoreStore,
	repository: repo_module.PostsRepository,
) -> tuple[list[models.ContentSummary], int]:
	"""Fetch and hydrate a list without publishing it. Returns items and missing count."""

	if spec.source is Source.LATEST_PAGE:
		return await repository.latest_page(spec.cap), 0
	if spec.source is Source.NOTICE:
		return await repository.notice_posts(spec.cap), 0
	ids = await fetch_ranked_ids(spec, store)
	if not ids:
		return [], 0
	ordered, missing = await hydrate(spec, ids, repository)
	return ordered, len(missing)


class RankingRefreshJob:
	"""Refreshes one named hot list."""

	def __init__(
		self,
		spec: HotListSpec,
		*,
		store: ScoreStore | None = None,
		cache: ListCache | None = None,
		repository: repo_module.PostsRepository | None = None,
		publisher: FeaturedPublisher | None = None,
		timeout_seconds: float | None = None,
	) -> None:
		self.spec = spec
		self.store = store or ScoreStore()
		self.cache = cache or ListCache()
		self.repo = repository or repo_module.PostsRepository()
		self.publisher = publisher or notify.publish_featured
		self.timeout_seconds = timeout_seconds or settings.ranking_job_timeout_seconds
		self.state = RefreshState.IDLE
		self._lock = asyncio.Lock()

	@property
	def job_name(self) -> str:
		return f"ranking.refresh.{self.spec.name.value}"

	async def run_once(self) -> RefreshResult:
		name = self.spec.name.value
		if self._lock.locked():
			_LOG.info("ranking.refresh.skipped", extra={"list": name})
			obs_metrics.record_job_run(self.job_name, result=RefreshOutcome.SKIPPED.value)
			return RefreshResult(list_name=name, outcome=RefreshOutcome.SKIPPED)
		async with self._lock:
			tokens = obs_logging.bind_context(job=self.job_name)
			started = time.perf_counter()
			try:
				result = await asyncio.wait_for(self._refresh(), timeout=self.timeout_seconds)
			except Exception:
				_LOG.error("ranking.refresh.failed", extra={"list": name, "state": self.state.value}, exc_info=True)
				result = RefreshResult(list_name=name, outcome=RefreshOutcome.FAILED)
			finally:
				self.state = RefreshState.IDLE
				obs_logging.reset_context(tokens)
			duration = time.perf_counter() - started
			obs_metrics.record_job_run(self.job_name, result=result.outcome.value, duration_seconds=duration)
			_LOG.info(
				"ranking.refresh.completed",
				extra={
					"list": name,
					"outcome": result.outcome.value,
					"published": result.published,
					"missing": result.missing,
					"duration": duration,
				},
			)
			return result

	async def _refresh(self) -> RefreshResult:
		spec = self.spec
		name = spec.name.value
		self.state = RefreshState.FETCHING
		if spec.source is Source.SCORE_STORE:
			ids = await fetch_ranked_ids(spec, self.store)
			if not ids:
				return RefreshResult(list_name=name, outcome=RefreshOutcome.EMPTY)
			self.state = RefreshState.HYDRATING
			items, missing_ids = await hydrate(spec, ids, self.repo)
			missing = len(missing_ids)
		elif spec.source is Source.LATEST_PAGE:
			items, missing = await self.repo.latest_page(spec.cap), 0
		else:
			items, missing = await self.repo.notice_posts(spec.cap), 0
		if not items:
			return RefreshResult(list_name=name, outcome=RefreshOutcome.EMPTY, missing=missing)

		self.state = RefreshState.PUBLISHING
		previous_ids: set[int] = set()
		if spec.featured_message:
			previous_ids = {item.id for item in await self.cache.read_all(name)}
		published = await self.cache.replace_all(name, items, spec.ttl_seconds)
		obs_metrics.set_hot_list_published(name, published)
		if spec.featured_message:
			await self._announce(items, previous_ids)
		return RefreshResult(list_name=name, outcome=RefreshOutcome.PUBLISHED, published=published, missing=missing)

	async def _announce(self, items: Sequence[models.ContentSummary], previous_ids: set[int]) -> None:
		"""Queue featured notifications for authors whose post newly entered the list."""

		name = self.spec.name.value
		for item in items:
			if item.member_id is None or item.id in previous_ids:
				continue
			try:
				await self.publisher(
					list_name=name,
					post_id=item.id,
					member_id=item.member_id,
					title=item.title,
					message=self.spec.featured_message,
				)
			except Exception:
				obs_metrics.inc_featured_event(name, "failed")
				_LOG.warning(
					"ranking.refresh.featured_failed",
					extra={"list": name, "post_id": item.id},
					exc_info=True,
				)
				continue
			obs_metrics.inc_featured_event(name, "queued")


def build_refresh_jobs(
	registry: dict,
	*,
	store: Optional[ScoreStore] = None,
	cache: Optional[ListCache] = None,
	repository: Optional[repo_module.PostsRepository] = None,
) -> dict:
	store = store or ScoreStore()
	cache = cache or ListCache()
	repository = repository or repo_module.PostsRepository()
	return {
		name: RankingRefreshJob(spec, store=store, cache=cache, repository=repository)
		for name, spec in registry.items()
	}


__all__ = [
	"RankingRefreshJob",
	"RefreshOutcome",
	"RefreshResult",
	"RefreshState",
	"build_refresh_jobs",
	"compute_hot_list",
	"fetch_ranked_ids",
	"hydrate",
]
