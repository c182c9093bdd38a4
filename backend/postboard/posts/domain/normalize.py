"""Validation of raw store rows into canonical posts."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from postboard.posts.domain.exceptions import PostsError
from postboard.posts.domain.models import Post


def parse_post(raw: Mapping[str, Any], *, error: type[PostsError]) -> Post:
	"""Validate a single row, raising ``error`` when its shape is unusable."""
	try:
		return Post.model_validate(dict(raw))
	except ValidationError as exc:
		raise error("malformed_post_row", cause=exc) from exc


def parse_posts(rows: Iterable[Mapping[str, Any]], *, error: type[PostsError]) -> list[Post]:
	return [parse_post(row, error=error) for row in rows]


__all__ = ["parse_post", "parse_posts"]
