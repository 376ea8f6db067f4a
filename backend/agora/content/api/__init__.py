"""FastAPI routers for the content domain."""

from __future__ import annotations

from fastapi import APIRouter

from agora.content.api import bookmarks, comments, content, feeds

router = APIRouter(prefix="/api/v1")

router.include_router(content.router)
router.include_router(feeds.router)
router.include_router(comments.router)
router.include_router(bookmarks.router)

__all__ = ["router"]
