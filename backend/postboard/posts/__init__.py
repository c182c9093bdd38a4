"""Posts feed: read pipeline, create pipeline and the post-list query cache."""

from postboard.posts.api import router

__all__ = ["router"]
