"""Session provider capability consumed by the posts pipelines.

The session lifecycle (sign-in, refresh, sign-out) lives elsewhere; this module only
answers "who is the current user, if anyone".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from jwt import InvalidTokenError

from postboard.infra import jwt as jwt_helper

_LOG = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Session:
	user_id: str
	session_id: Optional[str] = None


class SessionProvider(Protocol):
	async def get_current_session(self) -> Session | None:
		...


class StaticSessionProvider:
	"""Returns a fixed session (or none). Used by scripts and tests."""

	def __init__(self, session: Session | None) -> None:
		self._session = session

	async def get_current_session(self) -> Session | None:
		return self._session


class TokenSessionProvider:
	"""Resolves the session from a bearer access token.

	A missing, expired or malformed token means there is no active session.
	"""

	def __init__(self, token: str | None) -> None:
		self._token = token

	async def get_current_session(self) -> Session | None:
		if not self._token:
			return None
		try:
			claims = jwt_helper.decode_access(self._token)
		except InvalidTokenError as exc:
			_LOG.info("session.token_rejected", extra={"reason": type(exc).__name__})
			return None
		return Session(user_id=str(claims["sub"]), session_id=str(claims["sid"]))


def parse_bearer(authorization: str | None) -> str | None:
	if not authorization:
		return None
	scheme, _, credentials = authorization.partition(" ")
	if scheme.lower() != "bearer" or not credentials.strip():
		return None
	return credentials.strip()


__all__ = ["Session", "SessionProvider", "StaticSessionProvider", "TokenSessionProvider", "parse_bearer"]
