"""Wire refresh and decay jobs onto the ranking scheduler."""

from __future__ import annotations

import logging

from bimillog.posts.infra.scheduler import RankingScheduler
from bimillog.posts.ranking.decay import DecayJob
from bimillog.posts.ranking.lists import HotList, HotListSpec, build_registry
from bimillog.posts.ranking.refresh import RankingRefreshJob, build_refresh_jobs

_LOG = logging.getLogger(__name__)


class RankingRuntime:
	"""Owns the scheduler plus one refresh job per list and one decay job per decaying list."""

	def __init__(
		self,
		*,
		registry: dict[HotList, HotListSpec] | None = None,
		scheduler: RankingScheduler | None = None,
		refresh_jobs: dict[HotList, RankingRefreshJob] | None = None,
	) -> None:
		self.registry = registry or build_registry()
		self.scheduler = scheduler or RankingScheduler()
		self.refresh_jobs = refresh_jobs or build_refresh_jobs(self.registry)
		self.decay_jobs: dict[HotList, DecayJob] = {
			name: DecayJob(spec) for name, spec in self.registry.items() if spec.decays
		}

	def install(self) -> None:
		for name, job in self.refresh_jobs.items():
			self.scheduler.schedule_every(
				job.job_name,
				job.run_once,
				seconds=self.registry[name].refresh_seconds,
			)
		for name, job in self.decay_jobs.items():
			self.scheduler.schedule_every(
				job.job_name,
				job.run_once,
				seconds=self.registry[name].decay_seconds,
			)
		_LOG.info("ranking.schedule.installed", extra={"jobs": self.scheduler.job_ids()})

	def start(self) -> None:
		self.install()
		self.scheduler.start()

	def shutdown(self) -> None:
		self.scheduler.shutdown()

	def refresh_job(self, name: HotList) -> RankingRefreshJob:
		return self.refresh_jobs[name]


_runtime: RankingRuntime | None = None


def get_runtime() -> RankingRuntime:
	global _runtime
	if _runtime is None:
		_runtime = RankingRuntime()
	return _runtime


def set_runtime(runtime: RankingRuntime | None) -> None:
	global _runtime
	_runtime = runtime


__all__ = ["RankingRuntime", "get_runtime", "set_runtime"]
