"""Request identity helpers for FastAPI endpoints.

Authentication happens upstream; the gateway forwards the resolved member id in
``X-Member-Id``. Requests without it are treated as anonymous viewers.
"""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from bimillog.settings import settings


async def get_viewer_id(
	x_member_id: Optional[str] = Header(default=None, alias="X-Member-Id"),
) -> Optional[int]:
	if x_member_id is None or not x_member_id.strip():
		return None
	try:
		return int(x_member_id.strip())
	except ValueError as exc:
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_member_id") from exc


async def require_admin_token(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> None:
	expected = settings.admin_token
	if not expected or not x_admin_token:
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin_token_required")
	if not hmac.compare_digest(expected, x_admin_token):
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin_token_invalid")


__all__ = ["get_viewer_id", "require_admin_token"]
