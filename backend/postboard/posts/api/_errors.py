"""Error translation helpers for the posts API."""

from __future__ import annotations

from fastapi import HTTPException

from postboard.posts.domain import exceptions


def to_http_error(exc: exceptions.PostsError) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, exceptions.UploadError):
		return HTTPException(
			status_code=exc.status_code,
			detail={"code": "upload_failed", "index": exc.index, "file_name": exc.file_name},
		)
	headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, exceptions.AuthError) else None
	return HTTPException(status_code=exc.status_code, detail=exc.detail, headers=headers)
