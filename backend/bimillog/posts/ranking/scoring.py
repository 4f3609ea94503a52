"""Translate engagement events into score-store updates."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from redis.exceptions import RedisError

from bimillog.obs import metrics as obs_metrics
from bimillog.posts.infra.list_cache import ListCache
from bimillog.posts.infra.score_store import ScoreStore
from bimillog.posts.ranking.lists import HotList

_LOG = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 0.1


class Engagement(str, Enum):
	VIEW = "view"
	COMMENT = "comment"
	LIKE = "like"
	UNLIKE = "unlike"
	COMMENT_DELETED = "comment_deleted"


WEIGHTS: dict[Engagement, float] = {
	Engagement.VIEW: 2.0,
	Engagement.COMMENT: 3.0,
	Engagement.LIKE: 4.0,
	Engagement.UNLIKE: -4.0,
	Engagement.COMMENT_DELETED: -3.0,
}

# The legend set counts likes, not weighted engagement.
_LEGEND_DELTAS: dict[Engagement, float] = {
	Engagement.LIKE: 1.0,
	Engagement.UNLIKE: -1.0,
}

_WEIGHTED_LISTS = (HotList.REALTIME, HotList.WEEKLY)
_SCORE_LISTS = (HotList.REALTIME, HotList.WEEKLY, HotList.LEGEND)


class ScoreRecorder:
	"""Applies engagement deltas; failures are retried then dropped."""

	def __init__(
		self,
		*,
		store: ScoreStore | None = None,
		cache: ListCache | None = None,
		max_attempts: int = MAX_ATTEMPTS,
		backoff_seconds: float = BACKOFF_SECONDS,
	) -> None:
		self.store = store or ScoreStore()
		self.cache = cache or ListCache()
		self.max_attempts = max_attempts
		self.backoff_seconds = backoff_seconds

	async def record(self, event: Engagement, post_id: int) -> None:
		event = Engagement(event)
		weight = WEIGHTS[event]
		for hot_list in _WEIGHTED_LISTS:
			await self._apply(hot_list, post_id, weight)
		legend_delta = _LEGEND_DELTAS.get(event)
		if legend_delta is not None:
			await self._apply(HotList.LEGEND, post_id, legend_delta)

	async def remove_post(self, post_id: int) -> None:
		"""Forget a deleted post in every score set and cached list."""

		for hot_list in _SCORE_LISTS:
			await self._retry(
				lambda name=hot_list.value: self.store.remove_member(name, post_id),
				action="remove_member",
				list_name=hot_list.value,
				post_id=post_id,
			)
		for hot_list in HotList:
			await self._retry(
				lambda name=hot_list.value: self.cache.remove_item(name, post_id),
				action="remove_cached",
				list_name=hot_list.value,
				post_id=post_id,
			)

	async def _apply(self, hot_list: HotList, post_id: int, delta: float) -> None:
		ok = await self._retry(
			lambda: self.store.increment(hot_list.value, post_id, delta),
			action="increment",
			list_name=hot_list.value,
			post_id=post_id,
		)
		obs_metrics.inc_score_update(hot_list.value, "ok" if ok else "dropped")

	async def _retry(
		self,
		call: Callable[[], Awaitable[object]],
		*,
		action: str,
		list_name: str,
		post_id: int,
	) -> bool:
		for attempt in range(1, self.max_attempts + 1):
			try:
				await call()
				return True
			except (RedisError, OSError) as exc:
				if attempt >= self.max_attempts:
					_LOG.error(
						"ranking.scoring.dropped",
						extra={"action": action, "list": list_name, "post_id": post_id, "error": str(exc)},
					)
					return False
				_LOG.warning(
					"ranking.scoring.retry",
					extra={"action": action, "list": list_name, "post_id": post_id, "attempt": attempt},
				)
				await asyncio.sleep(self.backoff_seconds * attempt)
		return False


__all__ = ["BACKOFF_SECONDS", "Engagement", "MAX_ATTEMPTS", "ScoreRecorder", "WEIGHTS"]
