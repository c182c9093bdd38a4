"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from postboard import obs
from postboard.infra import postgres
from postboard.infra.redis import redis_client
from postboard.posts import router as posts_router
from postboard.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()
		await redis_client.aclose()


def create_app() -> FastAPI:
	app = FastAPI(title="postboard", lifespan=lifespan, debug=settings.is_dev)
	obs.init(app)
	app.include_router(posts_router)

	@app.get("/health")
	async def health() -> dict[str, str]:
		return {"status": "ok"}

	return app


app = create_app()
