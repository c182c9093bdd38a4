"""Sequential upload of post attachments to the object store."""

from __future__ import annotations

import logging
import secrets
import time
from typing import Sequence

from postboard.infra.storage import ObjectStore, ObjectStoreError, get_object_store
from postboard.obs import metrics as obs_metrics
from postboard.posts.domain.exceptions import UploadError
from postboard.posts.domain.models import Attachment, AttachmentFile
from postboard.settings import settings

_LOG = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_TOKEN_LENGTH = 6


def file_extension(name: str) -> str:
	"""Text after the last dot; a name without a dot is its own extension."""
	return name.rsplit(".", 1)[-1]


def random_token(length: int = _TOKEN_LENGTH) -> str:
	return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_object_name(file_name: str, *, now_ms: int | None = None) -> str:
	"""``{millisecond timestamp}-{base36 token}.{extension}``."""
	stamp = now_ms if now_ms is not None else int(time.time() * 1000)
	return f"{stamp}-{random_token()}.{file_extension(file_name)}"


class AttachmentUploader:
	"""Uploads a batch of files one after another, in input order.

	The first failure aborts the batch. Files stored earlier in the same call are
	left in place.
	"""

	def __init__(self, store: ObjectStore | None = None, *, prefix: str | None = None) -> None:
		self.store = store or get_object_store()
		raw_prefix = settings.storage_key_prefix if prefix is None else prefix
		self.prefix = raw_prefix if not raw_prefix or raw_prefix.endswith("/") else f"{raw_prefix}/"

	def storage_key(self, file_name: str) -> str:
		return f"{self.prefix}{generate_object_name(file_name)}"

	async def upload(self, files: Sequence[AttachmentFile]) -> list[Attachment]:
		attachments: list[Attachment] = []
		for index, item in enumerate(files):
			key = self.storage_key(item.name)
			_LOG.debug("posts.upload.start", extra={"index": index, "key": key})
			try:
				await self.store.upload(key, item.data, content_type=item.mime_type)
			except ObjectStoreError as exc:
				obs_metrics.inc_attachment_upload("error")
				obs_metrics.inc_orphaned_uploads(len(attachments))
				_LOG.warning(
					"posts.upload.failed",
					extra={
						"index": index,
						"file_name": item.name,
						"key": key,
						"orphaned": len(attachments),
					},
				)
				raise UploadError(
					index=index,
					file_name=item.name,
					storage_key=key,
					uploaded=attachments,
					cause=exc,
				) from exc
			obs_metrics.inc_attachment_upload("ok")
			attachments.append(Attachment(url=self.store.public_url(key), type=item.mime_type, name=item.name))
			_LOG.debug("posts.upload.done", extra={"index": index, "key": key})
		return attachments


__all__ = ["AttachmentUploader", "file_extension", "generate_object_name", "random_token"]
