"""Object storage for post attachments.

The store only needs two capabilities: put a blob under a key and resolve the
public URL of a stored key. The S3 implementation runs the blocking boto3 calls
in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from postboard.settings import settings

_LOG = logging.getLogger(__name__)


class ObjectStoreError(Exception):
	"""Raised when a blob cannot be written to the object store."""

	def __init__(self, key: str, message: str) -> None:
		super().__init__(f"{key}: {message}")
		self.key = key


class ObjectStore(Protocol):
	async def upload(self, key: str, data: bytes, *, content_type: str) -> None:
		...

	def public_url(self, key: str) -> str:
		...


class S3ObjectStore:
	"""Upload blobs to an S3 (or S3-compatible) bucket."""

	def __init__(
		self,
		*,
		bucket: str,
		client: Any | None = None,
		region: str | None = None,
		endpoint_url: str | None = None,
		public_base_url: str | None = None,
	) -> None:
		self.bucket = bucket
		self.region = region or settings.storage_region
		self.endpoint_url = endpoint_url
		self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
		self._client = client or boto3.client("s3", region_name=self.region, endpoint_url=endpoint_url)

	@classmethod
	def from_settings(cls) -> "S3ObjectStore":
		return cls(
			bucket=settings.storage_bucket,
			region=settings.storage_region,
			endpoint_url=settings.storage_endpoint_url,
			public_base_url=settings.storage_public_base_url,
		)

	async def upload(self, key: str, data: bytes, *, content_type: str) -> None:
		try:
			await asyncio.to_thread(
				self._client.put_object,
				Bucket=self.bucket,
				Key=key,
				Body=data,
				ContentType=content_type or "application/octet-stream",
			)
		except ClientError as exc:
			code = exc.response.get("Error", {}).get("Code", "client_error")
			raise ObjectStoreError(key, code) from exc
		except BotoCoreError as exc:
			raise ObjectStoreError(key, str(exc)) from exc
		_LOG.debug("storage.put_object", extra={"bucket": self.bucket, "key": key, "bytes": len(data)})

	def public_url(self, key: str) -> str:
		if self.public_base_url:
			return f"{self.public_base_url}/{key}"
		if self.endpoint_url:
			return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
		return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


_default_store: Optional[ObjectStore] = None


def get_object_store() -> ObjectStore:
	global _default_store
	if _default_store is None:
		_default_store = S3ObjectStore.from_settings()
	return _default_store


def set_object_store(store: Optional[ObjectStore]) -> None:
	global _default_store
	_default_store = store


__all__ = ["ObjectStore", "ObjectStoreError", "S3ObjectStore", "get_object_store", "set_object_store"]
