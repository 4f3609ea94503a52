"""Domain models for post ranking and search."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ContentSummary(BaseModel):
	"""Read-only projection of a post used by hot lists and search results."""

	id: int
	title: str
	view_count: int = 0
	like_count: int = 0
	comment_count: int = 0
	member_id: Optional[int] = None
	member_name: str = "익명"
	is_notice: bool = False
	created_at: datetime

	model_config = ConfigDict(from_attributes=True, frozen=True)


@dataclass(slots=True, frozen=True)
class ScoreEntry:
	"""A member of a score set annotated with its 1-based rank."""

	item_id: int
	score: float
	rank: int


@dataclass(slots=True)
class Page(Generic[T]):
	"""One page of results plus the total matching the same predicate."""

	items: list[T] = field(default_factory=list)
	page: int = 0
	size: int = 20
	total: int = 0

	@classmethod
	def empty(cls, *, page: int, size: int) -> "Page[T]":
		return cls(items=[], page=page, size=size, total=0)

	@property
	def has_next(self) -> bool:
		return (self.page + 1) * self.size < self.total


def order_by_ids(summaries: Sequence[ContentSummary], ids: Sequence[int]) -> tuple[list[ContentSummary], list[int]]:
	"""Re-order hydrated rows to follow ``ids`` and report the ids that had no row."""

	by_id = {summary.id: summary for summary in summaries}
	ordered: list[ContentSummary] = []
	missing: list[int] = []
	for item_id in ids:
		summary = by_id.get(item_id)
		if summary is None:
			missing.append(item_id)
			continue
		ordered.append(summary)
	return ordered, missing


__all__ = ["ContentSummary", "Page", "ScoreEntry", "order_by_ids"]
