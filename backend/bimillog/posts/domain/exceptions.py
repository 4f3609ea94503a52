"""Custom exceptions for post ranking and search services."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class PostsError(Exception):
	"""Base class for post related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "posts_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class NotFoundError(PostsError):
	"""Raised when a named list or resource does not exist."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class QueryValidationError(PostsError):
	"""Raised when a search request has an invalid shape."""

	status_code = _HTTP_422
	detail = "validation_error"


class BackendError(PostsError):
	"""Raised when no data source could serve a request."""

	status_code = status.HTTP_503_SERVICE_UNAVAILABLE
	detail = "backend_unavailable"
