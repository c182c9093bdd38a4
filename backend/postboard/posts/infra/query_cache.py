"""Versioned query cache backed by Redis.

Each logical key has a version counter and at most one stored entry. An entry is
served only while its version matches the counter; ``invalidate`` bumps the
counter so the next read goes back to the fetcher. Keys with subscribers are
refetched in the background right after invalidation and every subscriber is
handed the fresh value.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, TypeVar

from postboard.infra.redis import redis_client
from postboard.obs import metrics as obs_metrics
from postboard.settings import settings

_LOG = logging.getLogger(__name__)

T = TypeVar("T")
Subscriber = Callable[[Any], Awaitable[None]]


@dataclass(slots=True)
class QueryDefinition(Generic[T]):
	fetcher: Callable[[], Awaitable[T]]
	serializer: Callable[[T], Any]
	deserializer: Callable[[Any], T]


@dataclass(slots=True)
class CacheEntry:
	"""Serialized value stored in Redis."""

	version: int
	payload: Any

	def to_json(self) -> str:
		return json.dumps({"version": self.version, "payload": self.payload})

	@staticmethod
	def from_json(raw: str) -> "CacheEntry":
		data = json.loads(raw)
		return CacheEntry(version=int(data.get("version", -1)), payload=data.get("payload"))


class QueryCache:
	def __init__(
		self,
		*,
		namespace: str | None = None,
		ttl_seconds: int | None = None,
		retry_attempts: int | None = None,
		retry_base_delay: float | None = None,
		retry_max_delay: float | None = None,
	) -> None:
		self.namespace = namespace or settings.query_cache_namespace
		self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.query_cache_ttl_seconds
		self.retry_attempts = retry_attempts if retry_attempts is not None else settings.query_retry_attempts
		self.retry_base_delay = retry_base_delay if retry_base_delay is not None else settings.query_retry_base_delay
		self.retry_max_delay = retry_max_delay if retry_max_delay is not None else settings.query_retry_max_delay
		self._definitions: Dict[str, QueryDefinition[Any]] = {}
		self._subscribers: Dict[str, list[Subscriber]] = {}
		self._inflight: Dict[tuple[str, int], asyncio.Task] = {}
		self._background: set[asyncio.Task] = set()

	# ------------------------------------------------------------------
	# Registration

	def register(self, key: str, definition: QueryDefinition[Any]) -> None:
		self._definitions[key] = definition

	def subscribe(self, key: str, callback: Subscriber) -> Callable[[], None]:
		"""Receive every freshly fetched value for ``key``. Returns an unsubscribe callable."""
		self._subscribers.setdefault(key, []).append(callback)

		def _unsubscribe() -> None:
			listeners = self._subscribers.get(key)
			if listeners and callback in listeners:
				listeners.remove(callback)

		return _unsubscribe

	def _definition(self, key: str) -> QueryDefinition[Any]:
		try:
			return self._definitions[key]
		except KeyError:
			raise KeyError(f"query_not_registered:{key}") from None

	def _entry_key(self, key: str) -> str:
		return f"{self.namespace}:{key}:entry"

	def _version_key(self, key: str) -> str:
		return f"{self.namespace}:{key}:version"

	# ------------------------------------------------------------------
	# Reads

	async def version(self, key: str) -> int:
		raw = await redis_client.get(self._version_key(key))
		return int(raw) if raw else 0

	async def fetch(self, key: str) -> Any:
		"""Return the current value for ``key``, loading it when the entry is missing or stale."""
		definition = self._definition(key)
		version = await self.version(key)
		cached = await redis_client.get(self._entry_key(key))
		if cached:
			entry = CacheEntry.from_json(cached)
			if entry.version == version:
				obs_metrics.inc_query_cache("hit")
				return definition.deserializer(entry.payload)
		obs_metrics.inc_query_cache("miss")
		inflight_key = (key, version)
		task = self._inflight.get(inflight_key)
		if task is None:
			task = asyncio.create_task(self._load(key, version, definition))
			self._inflight[inflight_key] = task
			task.add_done_callback(lambda _t: self._inflight.pop(inflight_key, None))
		return await asyncio.shield(task)

	async def _load(self, key: str, version: int, definition: QueryDefinition[Any]) -> Any:
		value = await self._fetch_with_retry(key, definition)
		entry = CacheEntry(version=version, payload=definition.serializer(value))
		# A fetch overtaken by an invalidation is neither stored nor published; the
		# caller still gets its value, subscribers wait for the newer load.
		if await self.version(key) != version:
			return value
		await redis_client.set(self._entry_key(key), entry.to_json(), ex=self.ttl_seconds)
		await self._notify(key, value)
		return value

	async def _fetch_with_retry(self, key: str, definition: QueryDefinition[Any]) -> Any:
		attempt = 0
		while True:
			try:
				return await definition.fetcher()
			except Exception:
				if attempt >= self.retry_attempts:
					raise
				delay = min(self.retry_base_delay * (2**attempt), self.retry_max_delay)
				_LOG.info("query_cache.retry", extra={"key": key, "attempt": attempt + 1, "delay": delay})
				attempt += 1
				await asyncio.sleep(delay)

	async def _notify(self, key: str, value: Any) -> None:
		for callback in list(self._subscribers.get(key, ())):
			try:
				await callback(value)
			except Exception:  # pragma: no cover - logging safeguard
				_LOG.exception("query_cache.subscriber_failed", extra={"key": key})

	# ------------------------------------------------------------------
	# Invalidation

	async def invalidate(self, key: str) -> int:
		"""Mark the stored value for ``key`` stale and refetch it for active subscribers."""
		version = int(await redis_client.incr(self._version_key(key)))
		obs_metrics.inc_query_cache("invalidate")
		_LOG.debug("query_cache.invalidated", extra={"key": key, "version": version})
		if self._subscribers.get(key) and key in self._definitions:
			task = asyncio.create_task(self._refetch(key))
			self._background.add(task)
			task.add_done_callback(self._background.discard)
		return version

	async def _refetch(self, key: str) -> None:
		try:
			await self.fetch(key)
		except Exception:
			obs_metrics.inc_query_cache("refetch_error")
			_LOG.warning("query_cache.refetch_failed", extra={"key": key}, exc_info=True)

	async def wait_idle(self) -> None:
		"""Wait for background refetches started by ``invalidate``."""
		while self._background:
			await asyncio.gather(*list(self._background), return_exceptions=True)


__all__ = ["CacheEntry", "QueryCache", "QueryDefinition"]
