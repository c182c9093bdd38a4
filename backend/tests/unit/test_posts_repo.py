from __future__ import annotations

import json
import unittest.mock
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from postboard.infra import postgres
from postboard.posts.domain.exceptions import InsertError
from postboard.posts.domain.models import Attachment, NewPostRecord
from postboard.posts.domain.repo import PostsRepository


def _mock_pool(monkeypatch, conn):
	mock_pool = unittest.mock.MagicMock()
	mock_pool.acquire.return_value.__aenter__.return_value = conn

	async def _mock_get_pool():
		return mock_pool

	monkeypatch.setattr(postgres, "get_pool", _mock_get_pool)
	return mock_pool


def _db_row(**overrides):
	user_id = uuid4()
	row = {
		"id": uuid4(),
		"title": "t",
		"content": "c",
		"created_at": datetime(2024, 2, 2, tzinfo=timezone.utc),
		"user_id": user_id,
		"attachment_urls": json.dumps([{"url": "u", "type": "image/png", "name": "n"}]),
		"hashtags": ["x"],
		"like_count": 0,
		"profiles": json.dumps({"id": str(user_id), "username": "ada", "avatar_url": None}),
	}
	row.update(overrides)
	return row


@pytest.mark.asyncio
async def test_select_posts_orders_newest_first_and_decodes_json(monkeypatch):
	conn = unittest.mock.AsyncMock()
	conn.fetch.return_value = [_db_row(), _db_row(attachment_urls=None)]
	_mock_pool(monkeypatch, conn)

	rows = await PostsRepository().select_posts()

	query = conn.fetch.await_args.args[0]
	assert "ORDER BY p.created_at DESC" in query
	assert "JOIN profiles pr ON pr.id = p.user_id" in query
	assert rows[0]["attachment_urls"] == [{"url": "u", "type": "image/png", "name": "n"}]
	assert rows[0]["profiles"]["username"] == "ada"
	assert rows[1]["attachment_urls"] is None


@pytest.mark.asyncio
async def test_select_posts_uses_configured_tables(monkeypatch):
	conn = unittest.mock.AsyncMock()
	conn.fetch.return_value = []
	_mock_pool(monkeypatch, conn)

	await PostsRepository(posts_table="feed_posts", profiles_table="people").select_posts()

	query = conn.fetch.await_args.args[0]
	assert "FROM feed_posts p" in query
	assert "JOIN people pr" in query


@pytest.mark.asyncio
async def test_insert_post_sends_record_and_returns_joined_row(monkeypatch):
	conn = unittest.mock.AsyncMock()
	conn.transaction = unittest.mock.MagicMock()
	conn.fetchrow.return_value = _db_row(hashtags=["a", "a"])
	_mock_pool(monkeypatch, conn)
	record = NewPostRecord(
		title="Hello",
		content="World",
		user_id="user-1",
		hashtags=["a", "a"],
		attachment_urls=[Attachment(url="https://cdn.test/posts/1.png", type="image/png", name="1.png")],
	)

	row = await PostsRepository().insert_post(record)

	args = conn.fetchrow.await_args.args
	assert "INSERT INTO posts" in args[0]
	assert "RETURNING *" in args[0]
	assert args[1:] == (
		"Hello",
		"World",
		["a", "a"],
		json.dumps([{"url": "https://cdn.test/posts/1.png", "type": "image/png", "name": "1.png"}]),
		"user-1",
		0,
	)
	assert row["profiles"]["username"] == "ada"
	conn.transaction.assert_called_once()


@pytest.mark.asyncio
async def test_insert_post_without_author_profile_raises(monkeypatch):
	conn = unittest.mock.AsyncMock()
	conn.transaction = unittest.mock.MagicMock()
	conn.fetchrow.return_value = None
	_mock_pool(monkeypatch, conn)

	with pytest.raises(InsertError) as info:
		await PostsRepository().insert_post(NewPostRecord(title="t", content="c", user_id="ghost"))

	assert info.value.detail == "author_profile_missing"
