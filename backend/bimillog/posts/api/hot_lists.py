"""Hot list endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from bimillog.infra.viewer import get_viewer_id
from bimillog.posts.api._errors import to_http_error
from bimillog.posts.schemas import dto
from bimillog.posts.services.hot_lists import HotListService

router = APIRouter(tags=["posts:hot"])
_service = HotListService()


def get_service() -> HotListService:
	return _service


@router.get("/hot/legend/page", response_model=dto.PostPageResponse)
async def get_legend_page_endpoint(
	page: int = Query(0, ge=0),
	size: int = Query(10, ge=1, le=100),
	viewer_id: Optional[int] = Depends(get_viewer_id),
	service: HotListService = Depends(get_service),
) -> dto.PostPageResponse:
	try:
		result = await service.get_legend_page(page, size, viewer_id=viewer_id)
	except Exception as exc:  # pragma: no cover - translated by handler
		raise to_http_error(exc) from exc
	return dto.PostPageResponse.from_page(result)


@router.get("/hot/{list_name}", response_model=dto.HotListResponse)
async def get_hot_list_endpoint(
	list_name: str,
	viewer_id: Optional[int] = Depends(get_viewer_id),
	service: HotListService = Depends(get_service),
) -> dto.HotListResponse:
	try:
		view = await service.get_hot_list(list_name, viewer_id=viewer_id)
	except Exception as exc:  # pragma: no cover - translated by handler
		raise to_http_error(exc) from exc
	return dto.HotListResponse(
		name=view.list_name,
		items=[dto.PostSummaryResponse.from_summary(item) for item in view.items],
		source=view.source,
	)
