"""Service layer for the posts feed: read pipeline and create pipeline."""

from __future__ import annotations

import logging
from typing import Sequence

import asyncpg
from pydantic import TypeAdapter
from redis.exceptions import RedisError

from postboard.infra.session import SessionProvider
from postboard.obs import metrics as obs_metrics
from postboard.posts.domain import normalize, repo as repo_module
from postboard.posts.domain.exceptions import AuthError, InsertError, QueryError, UploadError
from postboard.posts.domain.models import AttachmentFile, NewPostRecord, Post
from postboard.posts.domain.uploader import AttachmentUploader
from postboard.posts.infra.query_cache import QueryCache, QueryDefinition

_LOG = logging.getLogger(__name__)

POSTS_QUERY_KEY = "posts"

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)
_POST_LIST = TypeAdapter(list[Post])


class PostsService:
	"""Reads the post feed and creates posts with attachments."""

	def __init__(
		self,
		repository: repo_module.PostStore | None = None,
		uploader: AttachmentUploader | None = None,
		cache: QueryCache | None = None,
	) -> None:
		self.repo = repository or repo_module.PostsRepository()
		self.uploader = uploader or AttachmentUploader()
		self.cache = cache or QueryCache()
		self.cache.register(
			POSTS_QUERY_KEY,
			QueryDefinition(
				fetcher=self.fetch_posts,
				serializer=lambda posts: _POST_LIST.dump_python(posts, mode="json"),
				deserializer=_POST_LIST.validate_python,
			),
		)

	# ------------------------------------------------------------------
	# Reads

	async def fetch_posts(self) -> list[Post]:
		"""All posts, newest first, straight from the store."""
		try:
			rows = await self.repo.select_posts()
		except _STORE_ERRORS as exc:
			obs_metrics.inc_post_fetch_failure()
			_LOG.warning("posts.fetch.failed", extra={"error": type(exc).__name__})
			raise QueryError(cause=exc) from exc
		return normalize.parse_posts(rows, error=QueryError)

	async def get_posts(self) -> list[Post]:
		"""The post list as held by the query cache."""
		try:
			return await self.cache.fetch(POSTS_QUERY_KEY)
		except RedisError as exc:
			obs_metrics.inc_post_fetch_failure()
			_LOG.warning("posts.cache_read_failed", extra={"key": POSTS_QUERY_KEY})
			raise QueryError("cache_unavailable", cause=exc) from exc

	# ------------------------------------------------------------------
	# Writes

	async def create_post(
		self,
		session_provider: SessionProvider,
		*,
		title: str,
		content: str,
		hashtags: Sequence[str],
		files: Sequence[AttachmentFile] = (),
	) -> Post:
		session = await session_provider.get_current_session()
		if session is None:
			obs_metrics.inc_post_create_failure("auth")
			raise AuthError()

		try:
			attachments = await self.uploader.upload(files)
		except UploadError:
			obs_metrics.inc_post_create_failure("upload")
			raise

		record = NewPostRecord(
			title=title,
			content=content,
			user_id=session.user_id,
			hashtags=list(hashtags),
			attachment_urls=attachments,
			like_count=0,
		)
		try:
			row = await self.repo.insert_post(record)
		except InsertError:
			self._record_insert_failure(len(attachments))
			raise
		except _STORE_ERRORS as exc:
			self._record_insert_failure(len(attachments))
			raise InsertError(cause=exc) from exc

		try:
			post = normalize.parse_post(row, error=InsertError)
		except InsertError:
			# The row is committed; refresh the list so it becomes visible.
			obs_metrics.inc_post_create_failure("insert")
			await self._invalidate_posts()
			raise
		obs_metrics.inc_post_created()
		_LOG.info(
			"posts.created",
			extra={"post_id": post.id, "user_id": session.user_id, "attachments": len(attachments)},
		)
		await self._invalidate_posts()
		return post

	def _record_insert_failure(self, orphaned: int) -> None:
		obs_metrics.inc_post_create_failure("insert")
		obs_metrics.inc_orphaned_uploads(orphaned)
		_LOG.warning("posts.insert.failed", extra={"orphaned": orphaned})

	async def _invalidate_posts(self) -> None:
		try:
			await self.cache.invalidate(POSTS_QUERY_KEY)
		except RedisError:  # pragma: no cover - logging safeguard
			_LOG.exception("posts.cache_invalidate_failed", extra={"key": POSTS_QUERY_KEY})


__all__ = ["POSTS_QUERY_KEY", "PostsService"]
