"""FastAPI routers for the posts domain."""

from __future__ import annotations

from fastapi import APIRouter

from bimillog.posts.api import hot_lists, internal, search

router = APIRouter(prefix="/api/posts/v1")

router.include_router(hot_lists.router)
router.include_router(search.router)
router.include_router(internal.router)

__all__ = ["router"]
