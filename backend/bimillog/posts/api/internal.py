"""Internal endpoints used by operators and sibling services."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from bimillog.infra.viewer import require_admin_token
from bimillog.posts.api._errors import to_http_error
from bimillog.posts.ranking.lists import HotList
from bimillog.posts.ranking.schedule import RankingRuntime, get_runtime
from bimillog.posts.ranking.scoring import Engagement, ScoreRecorder
from bimillog.posts.schemas import dto

router = APIRouter(prefix="/internal", tags=["posts:internal"], dependencies=[Depends(require_admin_token)])
_recorder = ScoreRecorder()


def get_recorder() -> ScoreRecorder:
	return _recorder


class EngagementRequest(BaseModel):
	event: Engagement
	post_id: int


@router.post("/ranking/{list_name}/refresh", response_model=dto.RefreshResponse)
async def refresh_hot_list_endpoint(
	list_name: str,
	runtime: RankingRuntime = Depends(get_runtime),
) -> dto.RefreshResponse:
	try:
		job = runtime.refresh_job(HotList.parse(list_name))
	except Exception as exc:  # pragma: no cover - translated by handler
		raise to_http_error(exc) from exc
	result = await job.run_once()
	return dto.RefreshResponse(
		name=result.list_name,
		outcome=result.outcome.value,
		published=result.published,
		missing=result.missing,
	)


@router.post("/engagement", status_code=status.HTTP_202_ACCEPTED)
async def record_engagement_endpoint(
	payload: EngagementRequest,
	recorder: ScoreRecorder = Depends(get_recorder),
) -> dict[str, str]:
	await recorder.record(payload.event, payload.post_id)
	return {"status": "accepted"}


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_post_endpoint(
	post_id: int,
	recorder: ScoreRecorder = Depends(get_recorder),
) -> None:
	await recorder.remove_post(post_id)
