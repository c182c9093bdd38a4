import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from postboard.infra import postgres
from postboard.infra.storage import ObjectStoreError
from postboard.main import app
from postboard.posts.api import posts as posts_api
from postboard.posts.domain.models import NewPostRecord
from postboard.posts.domain.services import PostsService
from postboard.posts.domain.uploader import AttachmentUploader
from postboard.posts.infra.query_cache import QueryCache


class FakeObjectStore:
	"""In-memory object store; ``fail_on`` holds the upload call numbers (0-based) that fail."""

	def __init__(self, *, fail_on: set[int] | None = None) -> None:
		self.objects: dict[str, tuple[bytes, str]] = {}
		self.calls: list[str] = []
		self.fail_on = fail_on or set()

	async def upload(self, key: str, data: bytes, *, content_type: str) -> None:
		call_number = len(self.calls)
		self.calls.append(key)
		if call_number in self.fail_on:
			raise ObjectStoreError(key, "simulated_failure")
		self.objects[key] = (data, content_type)

	def public_url(self, key: str) -> str:
		return f"https://cdn.test/{key}"


class FakePostStore:
	"""Keeps raw rows the way the database returns them (``attachment_urls`` + ``profiles``)."""

	def __init__(self) -> None:
		self.profiles: dict[str, dict[str, Any]] = {}
		self.rows: list[dict[str, Any]] = []
		self.select_calls = 0
		self.insert_calls = 0
		self.select_error: Exception | None = None
		self.insert_error: Exception | None = None
		self._clock = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

	def add_profile(self, username: str = "ada", avatar_url: str | None = None) -> str:
		user_id = str(uuid4())
		self.profiles[user_id] = {"id": user_id, "username": username, "avatar_url": avatar_url}
		return user_id

	def add_row(self, **overrides: Any) -> dict[str, Any]:
		user_id = overrides.pop("user_id", None) or self.add_profile()
		self._clock += timedelta(minutes=1)
		row = {
			"id": uuid4(),
			"title": "Title",
			"content": "Content",
			"created_at": self._clock,
			"user_id": user_id,
			"attachment_urls": [],
			"hashtags": [],
			"like_count": 0,
			"profiles": self.profiles[user_id],
		}
		row.update(overrides)
		self.rows.append(row)
		return row

	async def select_posts(self) -> list[dict[str, Any]]:
		self.select_calls += 1
		if self.select_error is not None:
			raise self.select_error
		return [dict(row) for row in sorted(self.rows, key=lambda r: r["created_at"], reverse=True)]

	async def insert_post(self, record: NewPostRecord) -> dict[str, Any]:
		self.insert_calls += 1
		if self.insert_error is not None:
			raise self.insert_error
		row = self.add_row(
			user_id=record.user_id,
			title=record.title,
			content=record.content,
			hashtags=list(record.hashtags),
			attachment_urls=record.attachments_payload(),
			like_count=record.like_count,
		)
		return dict(row)


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from postboard.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture
def object_store() -> FakeObjectStore:
	return FakeObjectStore()


@pytest.fixture
def post_store() -> FakePostStore:
	return FakePostStore()


@pytest.fixture
def query_cache() -> QueryCache:
	return QueryCache(namespace="test:query", retry_attempts=0, retry_base_delay=0.0)


@pytest.fixture
def posts_service(post_store, object_store, query_cache) -> PostsService:
	return PostsService(
		repository=post_store,
		uploader=AttachmentUploader(object_store, prefix="posts/"),
		cache=query_cache,
	)


@pytest_asyncio.fixture
async def api_client(posts_service):
	posts_api.set_posts_service(posts_service)
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		posts_api.set_posts_service(None)
