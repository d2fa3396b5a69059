"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from roundtable.api.request_id import get_request_id
from roundtable.domain.membership.exceptions import MembershipError

LOGGER = logging.getLogger(__name__)


def membership_error_payload(request: Request, exc: MembershipError) -> dict:
	payload = {"detail": exc.detail, "code": exc.code, "request_id": get_request_id(request)}
	payload.update(exc.extra())
	return payload


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(MembershipError)
	async def membership_exc_handler(request: Request, exc: MembershipError):  # type: ignore[override]
		if exc.status_code >= 500:
			LOGGER.error("membership_error", extra={"code": exc.code, "status": exc.status_code})
		return JSONResponse(status_code=exc.status_code, content=membership_error_payload(request, exc))

	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"detail": exc.detail, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {
			"detail": "validation_error",
			"errors": jsonable_encoder(exc.errors()),
			"request_id": get_request_id(request),
		}
		return JSONResponse(status_code=422, content=payload)

