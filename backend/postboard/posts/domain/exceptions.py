"""Custom exceptions for the posts pipelines."""

from __future__ import annotations

from typing import Sequence, TYPE_CHECKING

from fastapi import status

if TYPE_CHECKING:  # pragma: no cover
	from postboard.posts.domain.models import Attachment


class PostsError(Exception):
	"""Base class for posts related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "posts_error"

	def __init__(self, detail: str | None = None, *, cause: BaseException | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail
		self.cause = cause


class AuthError(PostsError):
	"""Raised when a post is created without an active session."""

	status_code = status.HTTP_401_UNAUTHORIZED
	detail = "not_authenticated"


class UploadError(PostsError):
	"""Raised when one file of an attachment batch fails to upload.

	``uploaded`` holds the attachments stored earlier in the same batch. They are
	not removed and stay orphaned in the object store.
	"""

	status_code = status.HTTP_502_BAD_GATEWAY
	detail = "upload_failed"

	def __init__(
		self,
		*,
		index: int,
		file_name: str,
		storage_key: str,
		uploaded: Sequence["Attachment"] = (),
		cause: BaseException | None = None,
	) -> None:
		super().__init__(f"upload_failed:{file_name}", cause=cause)
		self.index = index
		self.file_name = file_name
		self.storage_key = storage_key
		self.uploaded = list(uploaded)


class InsertError(PostsError):
	"""Raised when the post record cannot be inserted or read back."""

	status_code = status.HTTP_502_BAD_GATEWAY
	detail = "insert_failed"


class QueryError(PostsError):
	"""Raised when the post list cannot be read."""

	status_code = status.HTTP_502_BAD_GATEWAY
	detail = "query_failed"


__all__ = ["PostsError", "AuthError", "UploadError", "InsertError", "QueryError"]
