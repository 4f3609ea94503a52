"""Periodic score decay for score-backed hot lists."""

from __future__ import annotations

import asyncio
import logging
import time

from bimillog.obs import metrics as obs_metrics
from bimillog.posts.infra.score_store import ScoreStore
from bimillog.posts.ranking.lists import HotListSpec
from bimillog.settings import settings

_LOG = logging.getLogger(__name__)


class DecayJob:
	"""Ages one score set by a constant factor and prunes entries under the floor."""

	def __init__(
		self,
		spec: HotListSpec,
		*,
		store: ScoreStore | None = None,
		floor: float | None = None,
		timeout_seconds: float | None = None,
	) -> None:
		if not spec.decays:
			raise ValueError(f"{spec.name.value} does not decay")
		self.spec = spec
		self.store = store or ScoreStore()
		self.floor = settings.score_floor if floor is None else floor
		self.timeout_seconds = timeout_seconds or settings.ranking_job_timeout_seconds

	@property
	def job_name(self) -> str:
		return f"ranking.decay.{self.spec.name.value}"

	async def run_once(self) -> int | None:
		"""Return the surviving member count, or ``None`` when the pass failed."""

		name = self.spec.name.value
		started = time.perf_counter()
		try:
			remaining = await asyncio.wait_for(
				self.store.decay_and_prune(self.spec.score_key, self.spec.decay_factor, self.floor),
				timeout=self.timeout_seconds,
			)
		except Exception:
			_LOG.error("ranking.decay.failed", extra={"list": name}, exc_info=True)
			obs_metrics.record_job_run(self.job_name, result="failed", duration_seconds=time.perf_counter() - started)
			return None
		duration = time.perf_counter() - started
		obs_metrics.record_job_run(self.job_name, result="ok", duration_seconds=duration)
		obs_metrics.set_score_set_size(name, remaining)
		_LOG.info(
			"ranking.decay.completed",
			extra={"list": name, "factor": self.spec.decay_factor, "remaining": remaining, "duration": duration},
		)
		return remaining


__all__ = ["DecayJob"]
