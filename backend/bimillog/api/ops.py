"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from bimillog.infra.postgres import get_pool
from bimillog.infra.redis import redis_client
from bimillog.infra.viewer import require_admin_token
from bimillog.settings import settings

_LOG = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ops"])


async def require_metrics_access(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> None:
	if settings.obs_metrics_public:
		return
	await require_admin_token(x_admin_token=x_admin_token)


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return {"status": "ok", "service": settings.service_name, "commit": settings.git_commit}


@router.get("/health/ready")
async def health_ready() -> Response:
	checks: dict[str, str] = {}
	try:
		await redis_client.ping()
		checks["redis"] = "ok"
	except Exception:
		_LOG.warning("ops.health.redis_unavailable", exc_info=True)
		checks["redis"] = "error"
	try:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute("SELECT 1")
		checks["postgres"] = "ok"
	except Exception:
		_LOG.warning("ops.health.postgres_unavailable", exc_info=True)
		checks["postgres"] = "error"
	ready = all(value == "ok" for value in checks.values())
	status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
	return JSONResponse(content={"status": "ok" if ready else "degraded", "checks": checks}, status_code=status_code)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
