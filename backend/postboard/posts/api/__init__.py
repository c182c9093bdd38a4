"""FastAPI routers for the posts feed."""

from __future__ import annotations

from fastapi import APIRouter

from postboard.posts.api import posts

router = APIRouter(prefix="/api/v1")

router.include_router(posts.router)

__all__ = ["router"]
