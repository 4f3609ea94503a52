"""Validation helpers for post search inputs."""

from __future__ import annotations

from bimillog.posts.domain.exceptions import QueryValidationError
from bimillog.settings import settings

MAX_PAGE_SIZE = 100


def normalize_query(value: str | None) -> str:
	"""Collapse whitespace and trim surrounding spaces."""

	if not value:
		return ""
	return " ".join(value.strip().split())


def ensure_query_allowed(query: str, *, max_length: int | None = None) -> str:
	limit = max_length or settings.search_max_query_length
	if not query:
		raise QueryValidationError("query_empty")
	if len(query) > limit:
		raise QueryValidationError("query_too_long")
	return query


def ensure_page_allowed(page: int, size: int) -> None:
	if page < 0:
		raise QueryValidationError("invalid_page")
	if size < 1 or size > MAX_PAGE_SIZE:
		raise QueryValidationError("invalid_page_size")


__all__ = ["MAX_PAGE_SIZE", "ensure_page_allowed", "ensure_query_allowed", "normalize_query"]
