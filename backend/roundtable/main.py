from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roundtable.api import ops
from roundtable.api import router as api_router
from roundtable.api.errors import install_error_handlers
from roundtable.api.middleware_request_id import RequestIdMiddleware
from roundtable.infra import postgres
from roundtable.obs import init as obs_init
from roundtable.settings import settings

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	uses_postgres = settings.storage_backend == "postgres"
	if uses_postgres:
		await postgres.init_pool()
	LOGGER.info("startup", extra={"storage_backend": settings.storage_backend})
	try:
		yield
	finally:
		if uses_postgres:
			await postgres.close_pool()


def _allowed_origins() -> list[str]:
	allow_origins = list(settings.cors_allow_origins)
	if not allow_origins:
		allow_origins = ["http://localhost:3000"] if settings.is_dev() else []
	# Starlette disallows wildcard '*' with allow_credentials=True.
	if "*" in allow_origins:
		allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []
	return allow_origins


def create_app() -> FastAPI:
	app = FastAPI(title="Round Table Membership", lifespan=lifespan)
	install_error_handlers(app)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=_allowed_origins(),
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	obs_init(app)
	# Ensure every request carries an X-Request-Id and make it available on request.state
	app.add_middleware(RequestIdMiddleware)

	app.include_router(api_router)
	app.include_router(ops.router, tags=["ops"])
	return app


app = create_app()
