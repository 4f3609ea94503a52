"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bimillog.api import ops
from bimillog.infra import postgres
from bimillog.obs import init as obs_init
from bimillog.posts.api import router as posts_router
from bimillog.posts.ranking.schedule import get_runtime
from bimillog.settings import settings

_LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	runtime = None
	if settings.ranking_jobs_enabled:
		runtime = get_runtime()
		runtime.start()
		app.state.ranking_runtime = runtime
		_LOG.info("ranking.jobs.started")
	try:
		yield
	finally:
		if runtime is not None:
			runtime.shutdown()
		await postgres.close_pool()


def create_app() -> FastAPI:
	app = FastAPI(title="Bimillog Posts Core", lifespan=lifespan)
	obs_init(app)
	app.include_router(ops.router)
	app.include_router(posts_router)
	return app


app = create_app()
