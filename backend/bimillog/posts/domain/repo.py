"""Async repository helpers for posts ranking and search."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

import asyncpg

from bimillog.infra.postgres import get_pool
from bimillog.posts.domain import models
from bimillog.posts.search.strategy import MatchMode, SearchField, build_prefix_tsquery, like_pattern

_SUMMARY_COLUMNS = """
	p.id,
	p.title,
	p.views AS view_count,
	p.like_count,
	p.comment_count,
	p.member_id,
	COALESCE(m.member_name, '익명') AS member_name,
	p.is_notice,
	p.created_at
"""

_FROM_POSTS = "FROM post p LEFT JOIN member m ON m.id = p.member_id"

_PATTERN_COLUMNS: dict[SearchField, tuple[str, ...]] = {
	SearchField.TITLE: ("p.title",),
	SearchField.TITLE_CONTENT: ("p.title", "p.content"),
	SearchField.AUTHOR: ("m.member_name",),
}

_FULLTEXT_VECTORS: dict[SearchField, str] = {
	SearchField.TITLE: "to_tsvector('simple', p.title)",
	SearchField.TITLE_CONTENT: "to_tsvector('simple', p.title || ' ' || COALESCE(p.content, ''))",
}


class _Predicate:
	"""Collects WHERE conditions with positional asyncpg parameters."""

	def __init__(self) -> None:
		self.conditions: list[str] = []
		self.params: list[object] = []

	def bind(self, value: object) -> str:
		self.params.append(value)
		return f"${len(self.params)}"

	def add(self, condition: str) -> None:
		self.conditions.append(condition)

	def sql(self) -> str:
		return " AND ".join(self.conditions) if self.conditions else "TRUE"


def _visible_to(predicate: _Predicate, viewer_id: Optional[int]) -> None:
	"""Exclude authors in a block relationship with the viewer, in either direction."""

	if viewer_id is None:
		return
	viewer = predicate.bind(viewer_id)
	predicate.add(
		f"""NOT EXISTS (
			SELECT 1 FROM member_blacklist b
			WHERE (b.request_member_id = {viewer} AND b.black_member_id = p.member_id)
			   OR (b.request_member_id = p.member_id AND b.black_member_id = {viewer})
		)"""
	)


def _search_predicate(viewer_id: Optional[int]) -> _Predicate:
	predicate = _Predicate()
	predicate.add("p.is_notice = FALSE")
	_visible_to(predicate, viewer_id)
	return predicate


def _to_summary(row: asyncpg.Record) -> models.ContentSummary:
	return models.ContentSummary.model_validate(dict(row))


class PostsRepository:
	"""Thin data-access layer around asyncpg."""

	# --- Hydration -------------------------------------------------------

	async def batch_get_by_ids(self, ids: Sequence[int]) -> list[models.ContentSummary]:
		"""Load summaries for ``ids`` in one query. Order is not guaranteed."""

		if not ids:
			return []
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"SELECT {_SUMMARY_COLUMNS} {_FROM_POSTS} WHERE p.id = ANY($1::bigint[])",
				list(ids),
			)
		return [_to_summary(row) for row in rows]

	async def latest_page(self, size: int) -> list[models.ContentSummary]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"SELECT {_SUMMARY_COLUMNS} {_FROM_POSTS} ORDER BY p.id DESC LIMIT $1",
				size,
			)
		return [_to_summary(row) for row in rows]

	async def notice_posts(self, limit: int) -> list[models.ContentSummary]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"SELECT {_SUMMARY_COLUMNS} {_FROM_POSTS} WHERE p.is_notice = TRUE ORDER BY p.id DESC LIMIT $1",
				limit,
			)
		return [_to_summary(row) for row in rows]

	async def recent_popular(self, limit: int, *, hours: int = 1) -> list[models.ContentSummary]:
		"""Approximate the realtime list from Postgres when the score store is unreachable."""

		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_SUMMARY_COLUMNS} {_FROM_POSTS}
				WHERE p.is_notice = FALSE
				  AND p.created_at >= NOW() - make_interval(hours => $2)
				ORDER BY (p.views + p.like_count * 30) DESC, p.created_at DESC
				LIMIT $1
				""",
				limit,
				hours,
			)
		return [_to_summary(row) for row in rows]

	async def most_liked(self, limit: int, *, min_likes: int) -> list[models.ContentSummary]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_SUMMARY_COLUMNS} {_FROM_POSTS}
				WHERE p.is_notice = FALSE AND p.like_count >= $2
				ORDER BY p.like_count DESC, p.id DESC
				LIMIT $1
				""",
				limit,
				min_likes,
			)
		return [_to_summary(row) for row in rows]

	# --- Search ----------------------------------------------------------

	async def full_text_search(
		self,
		field: SearchField,
		term: str,
		*,
		limit: int,
		viewer_id: Optional[int] = None,
	) -> list[int]:
		"""Return up to ``limit`` candidate ids, newest first, matching ``term`` as word prefixes."""

		tsquery = build_prefix_tsquery(term)
		if tsquery is None:
			return []
		vector = _FULLTEXT_VECTORS.get(field)
		if vector is None:
			raise ValueError(f"full-text search is not available for {field.value}")
		predicate = _search_predicate(viewer_id)
		predicate.add(f"{vector} @@ to_tsquery('simple', {predicate.bind(tsquery)})")
		limit_param = predicate.bind(limit)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT p.id {_FROM_POSTS}
				WHERE {predicate.sql()}
				ORDER BY p.created_at DESC, p.id DESC
				LIMIT {limit_param}
				""",
				*predicate.params,
			)
		return [int(row["id"]) for row in rows]

	async def pattern_search(
		self,
		field: SearchField,
		term: str,
		mode: MatchMode,
		*,
		page: int,
		size: int,
		viewer_id: Optional[int] = None,
	) -> models.Page[models.ContentSummary]:
		"""Run an ILIKE search; content and count share one predicate."""

		predicate = _search_predicate(viewer_id)
		bound = predicate.bind(like_pattern(term, mode))
		columns = _PATTERN_COLUMNS[field]
		predicate.add("(" + " OR ".join(f"{column} ILIKE {bound}" for column in columns) + ")")
		where_clause = predicate.sql()
		count_params = list(predicate.params)
		limit_param = predicate.bind(size)
		offset_param = predicate.bind(page * size)
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction(isolation="repeatable_read", readonly=True):
				rows = await conn.fetch(
					f"""
					SELECT {_SUMMARY_COLUMNS} {_FROM_POSTS}
					WHERE {where_clause}
					ORDER BY p.created_at DESC, p.id DESC
					LIMIT {limit_param} OFFSET {offset_param}
					""",
					*predicate.params,
				)
				total = await conn.fetchval(
					f"SELECT COUNT(*) {_FROM_POSTS} WHERE {where_clause}",
					*count_params,
				)
		return models.Page(items=[_to_summary(row) for row in rows], page=page, size=size, total=int(total or 0))

	# --- Block relationships ---------------------------------------------

	async def is_blocked_pair(self, viewer_id: int, author_id: int) -> bool:
		blocked = await self.blocked_member_ids(viewer_id, [author_id])
		return author_id in blocked

	async def blocked_member_ids(self, viewer_id: int, candidates: Iterable[int]) -> set[int]:
		"""Return the subset of ``candidates`` blocked by or blocking ``viewer_id``."""

		candidate_ids = sorted({int(candidate) for candidate in candidates})
		if not candidate_ids:
			return set()
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT black_member_id AS member_id FROM member_blacklist
				WHERE request_member_id = $1 AND black_member_id = ANY($2::bigint[])
				UNION
				SELECT request_member_id AS member_id FROM member_blacklist
				WHERE black_member_id = $1 AND request_member_id = ANY($2::bigint[])
				""",
				viewer_id,
				candidate_ids,
			)
		return {int(row["member_id"]) for row in rows}


__all__ = ["PostsRepository"]
