"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from roundtable.api.deps import is_admin, require_admin
from roundtable.obs import health
from roundtable.settings import settings

router = APIRouter(prefix="", tags=["ops"])


async def require_metrics_access(admin: bool = Depends(is_admin)) -> None:
	if settings.obs_metrics_public:
		return
	require_admin(admin)


@router.get("/health/live")
async def health_live() -> dict:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready() -> JSONResponse:
	status_code, payload = await health.readiness()
	return JSONResponse(status_code=status_code, content=payload)


@router.get("/metrics", dependencies=[Depends(require_metrics_access)])
async def metrics_endpoint() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
