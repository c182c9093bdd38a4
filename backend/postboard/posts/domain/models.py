"""Domain models for posts and their attachments."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _as_str_id(value: Any) -> Any:
	if isinstance(value, UUID):
		return str(value)
	return value


def _as_list(value: Any) -> list:
	"""Anything that is not an actual list (null, missing, a scalar, a string) becomes []."""
	if isinstance(value, (list, tuple)):
		return list(value)
	return []


class AuthorSummary(BaseModel):
	"""Profile fields of a post's author."""

	id: str
	username: str
	avatar_url: Optional[str] = None

	model_config = ConfigDict(frozen=True)

	@field_validator("id", mode="before")
	@classmethod
	def _coerce_id(cls, value: Any) -> Any:
		return _as_str_id(value)


class Attachment(BaseModel):
	"""A stored file attached to a post."""

	url: str
	type: str
	name: str

	model_config = ConfigDict(frozen=True)


class Post(BaseModel):
	"""Canonical post as returned to callers.

	Rows coming from the store name the attachments column ``attachment_urls`` and
	the joined author ``profiles``; both spellings are accepted.
	"""

	id: str
	title: str
	content: str
	created_at: datetime
	user_id: str
	attachments: List[Attachment] = Field(
		default_factory=list,
		validation_alias=AliasChoices("attachments", "attachment_urls"),
	)
	hashtags: List[str] = Field(default_factory=list)
	like_count: int = Field(default=0, ge=0)
	# The store does not track comments yet; always reported as 0.
	comment_count: int = 0
	author: AuthorSummary = Field(validation_alias=AliasChoices("author", "profiles"))

	model_config = ConfigDict(frozen=True, populate_by_name=True)

	@field_validator("id", "user_id", mode="before")
	@classmethod
	def _coerce_ids(cls, value: Any) -> Any:
		return _as_str_id(value)

	@field_validator("attachments", "hashtags", mode="before")
	@classmethod
	def _coerce_sequences(cls, value: Any) -> list:
		return _as_list(value)

	@field_validator("like_count", mode="before")
	@classmethod
	def _coerce_like_count(cls, value: Any) -> Any:
		return 0 if value is None else value

	@field_validator("comment_count", mode="before")
	@classmethod
	def _force_zero_comments(cls, value: Any) -> int:
		return 0


@dataclass(slots=True)
class AttachmentFile:
	"""A file waiting to be uploaded."""

	data: bytes
	name: str
	mime_type: str


@dataclass(slots=True)
class NewPostRecord:
	"""Insert payload for the posts table."""

	title: str
	content: str
	user_id: str
	hashtags: list[str] = field(default_factory=list)
	attachment_urls: list[Attachment] = field(default_factory=list)
	like_count: int = 0

	def attachments_payload(self) -> list[dict[str, str]]:
		return [attachment.model_dump() for attachment in self.attachment_urls]


__all__ = ["Attachment", "AttachmentFile", "AuthorSummary", "NewPostRecord", "Post"]
