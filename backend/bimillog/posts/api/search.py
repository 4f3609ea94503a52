"""Post search endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from bimillog.infra.viewer import get_viewer_id
from bimillog.posts.api._errors import to_http_error
from bimillog.posts.schemas import dto
from bimillog.posts.search.resolver import SearchResolver

router = APIRouter(tags=["posts:search"])
_resolver = SearchResolver()


def get_resolver() -> SearchResolver:
	return _resolver


@router.get("/search", response_model=dto.SearchResponse)
async def search_posts_endpoint(
	q: str = Query(..., alias="q"),
	field: str = Query("title", alias="type"),
	page: int = Query(0),
	size: int = Query(20),
	viewer_id: Optional[int] = Depends(get_viewer_id),
	resolver: SearchResolver = Depends(get_resolver),
) -> dto.SearchResponse:
	try:
		result = await resolver.search(field, q, page=page, size=size, viewer_id=viewer_id)
	except Exception as exc:  # pragma: no cover - translated by handler
		raise to_http_error(exc) from exc
	base = dto.PostPageResponse.from_page(result.page)
	return dto.SearchResponse(**base.model_dump(), strategy=result.strategy.value)
