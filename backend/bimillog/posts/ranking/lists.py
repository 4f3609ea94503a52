"""Registry of the named hot lists and how each one is sourced."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bimillog.posts.domain.exceptions import NotFoundError
from bimillog.settings import settings


class HotList(str, Enum):
	REALTIME = "realtime"
	WEEKLY = "weekly"
	LEGEND = "legend"
	NOTICE = "notice"
	FIRST_PAGE = "first_page"

	@classmethod
	def parse(cls, value: "str | HotList") -> "HotList":
		if isinstance(value, cls):
			return value
		try:
			return cls(str(value).strip().lower())
		except ValueError as exc:
			raise NotFoundError("unknown_hot_list") from exc


class Source(str, Enum):
	SCORE_STORE = "score_store"
	LATEST_PAGE = "latest_page"
	NOTICE = "notice"


@dataclass(frozen=True, slots=True)
class HotListSpec:
	name: HotList
	source: Source
	cap: int
	ttl_seconds: int
	refresh_seconds: int
	score_key: Optional[str] = None
	min_score: Optional[float] = None
	featured_message: Optional[str] = None
	decay_seconds: Optional[int] = None
	decay_factor: Optional[float] = None

	@property
	def decays(self) -> bool:
		return self.score_key is not None and self.decay_factor is not None


def build_registry() -> dict[HotList, HotListSpec]:
	"""Build list specs from the current settings."""

	ttl = settings.hot_list_ttl_seconds
	return {
		HotList.REALTIME: HotListSpec(
			name=HotList.REALTIME,
			source=Source.SCORE_STORE,
			cap=settings.realtime_list_size,
			ttl_seconds=ttl,
			refresh_seconds=settings.realtime_refresh_seconds,
			score_key=HotList.REALTIME.value,
			decay_seconds=settings.realtime_decay_seconds,
			decay_factor=settings.realtime_decay_factor,
		),
		HotList.WEEKLY: HotListSpec(
			name=HotList.WEEKLY,
			source=Source.SCORE_STORE,
			cap=settings.weekly_list_size,
			ttl_seconds=ttl,
			refresh_seconds=settings.weekly_refresh_seconds,
			score_key=HotList.WEEKLY.value,
			featured_message="주간 인기 게시글로 선정되었어요!",
			decay_seconds=settings.weekly_decay_seconds,
			decay_factor=settings.weekly_decay_factor,
		),
		# All-time like counts; never decayed.
		HotList.LEGEND: HotListSpec(
			name=HotList.LEGEND,
			source=Source.SCORE_STORE,
			cap=settings.legend_list_size,
			ttl_seconds=ttl,
			refresh_seconds=settings.legend_refresh_seconds,
			score_key=HotList.LEGEND.value,
			min_score=settings.legend_min_score,
			featured_message="명예의 전당에 등극했어요!",
		),
		HotList.NOTICE: HotListSpec(
			name=HotList.NOTICE,
			source=Source.NOTICE,
			cap=settings.notice_list_size,
			ttl_seconds=ttl,
			refresh_seconds=settings.notice_refresh_seconds,
		),
		HotList.FIRST_PAGE: HotListSpec(
			name=HotList.FIRST_PAGE,
			source=Source.LATEST_PAGE,
			cap=settings.first_page_size,
			ttl_seconds=ttl,
			refresh_seconds=settings.first_page_refresh_seconds,
		),
	}


def score_lists(registry: dict[HotList, HotListSpec]) -> list[HotListSpec]:
	return [spec for spec in registry.values() if spec.score_key is not None]


__all__ = ["HotList", "HotListSpec", "Source", "build_registry", "score_lists"]
