"""Post routes."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile, status

from postboard.infra.session import TokenSessionProvider, parse_bearer
from postboard.posts.api._errors import to_http_error
from postboard.posts.domain.exceptions import PostsError
from postboard.posts.domain.hashtags import extract_hashtags
from postboard.posts.domain.models import AttachmentFile, Post
from postboard.posts.domain.services import PostsService
from postboard.settings import settings

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
	_HTTP_413 = status.HTTP_413_CONTENT_TOO_LARGE
else:  # pragma: no cover - fallback for older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY
	_HTTP_413 = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE

router = APIRouter(tags=["posts"])

_service: Optional[PostsService] = None


def get_posts_service() -> PostsService:
	global _service
	if _service is None:
		_service = PostsService()
	return _service


def set_posts_service(service: Optional[PostsService]) -> None:
	global _service
	_service = service


async def _read_files(files: List[UploadFile]) -> list[AttachmentFile]:
	if len(files) > settings.max_attachments_per_post:
		raise HTTPException(status_code=_HTTP_422, detail="too_many_attachments")
	result: list[AttachmentFile] = []
	limit = settings.max_attachment_bytes
	for upload in files:
		if upload.size is not None and upload.size > limit:
			raise HTTPException(status_code=_HTTP_413, detail="attachment_too_large")
		# Never buffer more than one byte past the limit.
		data = await upload.read(limit + 1)
		if len(data) > limit:
			raise HTTPException(status_code=_HTTP_413, detail="attachment_too_large")
		result.append(
			AttachmentFile(
				data=data,
				name=upload.filename or "",
				mime_type=upload.content_type or "application/octet-stream",
			)
		)
	return result


@router.get("/posts", response_model=List[Post])
async def list_posts_endpoint(service: PostsService = Depends(get_posts_service)) -> list[Post]:
	try:
		return await service.get_posts()
	except PostsError as exc:
		raise to_http_error(exc) from exc


@router.post("/posts", response_model=Post, status_code=201)
async def create_post_endpoint(
	title: str = Form(...),
	content: str = Form(...),
	hashtags: Optional[List[str]] = Form(default=None),
	files: List[UploadFile] = File(default=[]),
	authorization: str | None = Header(default=None),
	service: PostsService = Depends(get_posts_service),
) -> Post:
	# Without explicit tags, the tags written in the content are used.
	tags = hashtags if hashtags else extract_hashtags(content)
	attachment_files = await _read_files(files)
	try:
		return await service.create_post(
			TokenSessionProvider(parse_bearer(authorization)),
			title=title,
			content=content,
			hashtags=tags,
			files=attachment_files,
		)
	except PostsError as exc:
		raise to_http_error(exc) from exc
