"""Redis stream producer for featured-post notifications."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from bimillog.infra.redis import redis_client

STREAM_FEATURED = "post:featured"


def _now_ts() -> str:
    return datetime.now(timezone.utc).isoformat()


async def publish_featured(
    *,
    list_name: str,
    post_id: int,
    member_id: int,
    title: str,
    message: str,
) -> None:
    payload: dict[str, Any] = {
        "event": "post.featured",
        "list": list_name,
        "post_id": str(post_id),
        "member_id": str(member_id),
        "title": title,
        "message": message,
        "ts": _now_ts(),
    }
    await redis_client.xadd(STREAM_FEATURED, payload)


__all__ = ["STREAM_FEATURED", "publish_featured"]
