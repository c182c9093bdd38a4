"""Hashtag extraction for post content."""

from __future__ import annotations

import re

# ASCII word characters only: letters, digits and underscore.
_HASHTAG_RE = re.compile(r"#(\w+)", re.ASCII)


def extract_hashtags(text: str) -> list[str]:
	"""Return every ``#tag`` in ``text`` without the leading ``#``, in order of appearance.

	Case and duplicates are kept as written; deduplication or any other policy is up
	to the caller.
	"""
	if not text:
		return []
	return _HASHTAG_RE.findall(text)


__all__ = ["extract_hashtags"]
