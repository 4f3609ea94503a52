"""Pydantic schemas for the posts API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from bimillog.posts.domain import models


class PostSummaryResponse(BaseModel):
	id: int
	title: str
	view_count: int
	like_count: int
	comment_count: int
	member_id: Optional[int] = None
	member_name: str
	is_notice: bool
	created_at: datetime

	@classmethod
	def from_summary(cls, summary: models.ContentSummary) -> "PostSummaryResponse":
		return cls.model_validate(summary.model_dump())


class HotListResponse(BaseModel):
	name: str
	items: List[PostSummaryResponse]
	source: str


class PostPageResponse(BaseModel):
	items: List[PostSummaryResponse]
	page: int
	size: int
	total: int
	has_next: bool

	@classmethod
	def from_page(cls, page: models.Page[models.ContentSummary]) -> "PostPageResponse":
		return cls(
			items=[PostSummaryResponse.from_summary(item) for item in page.items],
			page=page.page,
			size=page.size,
			total=page.total,
			has_next=page.has_next,
		)


class SearchResponse(PostPageResponse):
	strategy: str


class RefreshResponse(BaseModel):
	name: str
	outcome: str
	published: int = 0
	missing: int = 0
