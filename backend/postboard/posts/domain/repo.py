"""Async repository for the posts and profiles tables."""

from __future__ import annotations

import json
from typing import Any, Mapping, Protocol

import asyncpg

from postboard.infra import postgres
from postboard.posts.domain.exceptions import InsertError
from postboard.posts.domain.models import NewPostRecord
from postboard.settings import settings

_JSON_COLUMNS = ("attachment_urls", "profiles")


class PostStore(Protocol):
	async def select_posts(self) -> list[dict[str, Any]]:
		...

	async def insert_post(self, record: NewPostRecord) -> dict[str, Any]:
		...


def _decode_json(value: Any) -> Any:
	if not isinstance(value, str):
		return value
	try:
		return json.loads(value)
	except ValueError:
		return value


def _row_to_dict(row: Mapping[str, Any] | asyncpg.Record) -> dict[str, Any]:
	data = dict(row)
	for column in _JSON_COLUMNS:
		if column in data:
			data[column] = _decode_json(data[column])
	return data


class PostsRepository:
	"""Thin data-access layer around asyncpg.

	Rows are returned raw (only JSON columns decoded); shaping them into posts is
	the caller's job.
	"""

	def __init__(self, *, posts_table: str | None = None, profiles_table: str | None = None) -> None:
		self.posts_table = posts_table or settings.posts_table
		self.profiles_table = profiles_table or settings.profiles_table

	def _author_json(self, alias: str) -> str:
		return f"json_build_object('id', {alias}.id, 'username', {alias}.username, 'avatar_url', {alias}.avatar_url)"

	async def select_posts(self) -> list[dict[str, Any]]:
		"""Every post joined with its author profile, newest first."""
		query = f"""
			SELECT p.*, {self._author_json("pr")} AS profiles
			FROM {self.posts_table} p
			JOIN {self.profiles_table} pr ON pr.id = p.user_id
			ORDER BY p.created_at DESC
		"""
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query)
		return [_row_to_dict(row) for row in rows]

	async def insert_post(self, record: NewPostRecord) -> dict[str, Any]:
		"""Insert a post and return the new row joined with its author profile."""
		query = f"""
			WITH inserted AS (
				INSERT INTO {self.posts_table} (title, content, hashtags, attachment_urls, user_id, like_count)
				VALUES ($1, $2, $3, $4::jsonb, $5, $6)
				RETURNING *
			)
			SELECT inserted.*, {self._author_json("pr")} AS profiles
			FROM inserted
			JOIN {self.profiles_table} pr ON pr.id = inserted.user_id
		"""
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					query,
					record.title,
					record.content,
					list(record.hashtags),
					json.dumps(record.attachments_payload()),
					record.user_id,
					record.like_count,
				)
				if row is None:
					# Raising inside the transaction rolls the insert back.
					raise InsertError("author_profile_missing")
		return _row_to_dict(row)


__all__ = ["PostStore", "PostsRepository"]
