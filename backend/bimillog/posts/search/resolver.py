"""Execute search plans against the posts repository."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from bimillog.obs import metrics as obs_metrics
from bimillog.posts.domain import models
from bimillog.posts.domain import repo as repo_module
from bimillog.posts.search import guards
from bimillog.posts.search.strategy import (
	SearchField,
	SearchPlan,
	SearchPolicy,
	Strategy,
	plan_search,
)

_LOG = logging.getLogger(__name__)


@dataclass(slots=True)
class FullTextResult:
	"""Candidate ids from the full-text step, or the error that stopped it."""

	ids: list[int]
	error: Optional[Exception] = None

	@property
	def usable(self) -> bool:
		return self.error is None and bool(self.ids)


@dataclass(slots=True)
class SearchResult:
	page: models.Page[models.ContentSummary]
	strategy: Strategy


class SearchResolver:
	"""Choose and run the search strategy for a query, with pattern-match fallback."""

	def __init__(
		self,
		*,
		repository: repo_module.PostsRepository | None = None,
		policy: SearchPolicy | None = None,
	) -> None:
		self._repo = repository or repo_module.PostsRepository()
		self._policy = policy

	@property
	def policy(self) -> SearchPolicy:
		return self._policy or SearchPolicy.from_settings()

	async def search(
		self,
		field: SearchField | str,
		term: str | None,
		*,
		page: int = 0,
		size: int = 20,
		viewer_id: Optional[int] = None,
	) -> SearchResult:
		search_field = SearchField.parse(field)
		normalized = guards.ensure_query_allowed(guards.normalize_query(term))
		guards.ensure_page_allowed(page, size)

		plan = plan_search(search_field, normalized, size=size, policy=self.policy)
		started = time.perf_counter()
		if plan.fulltext:
			result = await self._full_text(search_field, normalized, plan, page=page, size=size, viewer_id=viewer_id)
		else:
			items = await self._repo.pattern_search(
				search_field,
				normalized,
				plan.fallback_mode,
				page=page,
				size=size,
				viewer_id=viewer_id,
			)
			result = SearchResult(page=items, strategy=plan.primary)
		duration = time.perf_counter() - started
		obs_metrics.inc_search_query(search_field.value, result.strategy.value)
		obs_metrics.observe_search_latency(search_field.value, duration)
		_LOG.debug(
			"posts.search.resolved",
			extra={
				"field": search_field.value,
				"strategy": result.strategy.value,
				"total": result.page.total,
				"duration": duration,
			},
		)
		return result

	async def _full_text(
		self,
		field: SearchField,
		term: str,
		plan: SearchPlan,
		*,
		page: int,
		size: int,
		viewer_id: Optional[int],
	) -> SearchResult:
		candidates = await self._run_full_text(field, term, plan.candidate_limit, viewer_id)
		if not candidates.usable:
			reason = "error" if candidates.error is not None else "empty"
			obs_metrics.inc_search_fallback(reason)
			_LOG.info("posts.search.fulltext_fallback", extra={"field": field.value, "reason": reason})
			items = await self._repo.pattern_search(
				field,
				term,
				plan.fallback_mode,
				page=page,
				size=size,
				viewer_id=viewer_id,
			)
			return SearchResult(page=items, strategy=Strategy.FULLTEXT_FALLBACK)

		window = candidates.ids[page * size : (page + 1) * size]
		if not window:
			return SearchResult(
				page=models.Page(items=[], page=page, size=size, total=len(candidates.ids)),
				strategy=Strategy.FULLTEXT,
			)
		summaries = await self._repo.batch_get_by_ids(window)
		ordered, _missing = models.order_by_ids(summaries, window)
		return SearchResult(
			page=models.Page(items=ordered, page=page, size=size, total=len(candidates.ids)),
			strategy=Strategy.FULLTEXT,
		)

	async def _run_full_text(
		self,
		field: SearchField,
		term: str,
		limit: Optional[int],
		viewer_id: Optional[int],
	) -> FullTextResult:
		try:
			ids = await self._repo.full_text_search(
				field,
				term,
				limit=limit or self.policy.candidate_cap,
				viewer_id=viewer_id,
			)
		except Exception as exc:
			_LOG.warning(
				"posts.search.fulltext_failed",
				extra={"field": field.value, "error": type(exc).__name__},
				exc_info=True,
			)
			return FullTextResult(ids=[], error=exc)
		return FullTextResult(ids=list(ids))


__all__ = ["FullTextResult", "SearchResolver", "SearchResult"]
