"""Organisation settings endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from roundtable.api.deps import get_org_settings_service, require_admin
from roundtable.domain.membership import schemas
from roundtable.domain.membership.org_settings import OrgSettingsService

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=schemas.OrgSettingsResponse)
async def get_settings_endpoint(
	service: OrgSettingsService = Depends(get_org_settings_service),
) -> schemas.OrgSettingsResponse:
	return schemas.OrgSettingsResponse.model_validate(await service.get_settings())


@router.patch(
	"",
	response_model=schemas.OrgSettingsResponse,
	dependencies=[Depends(require_admin)],
)
async def update_settings_endpoint(
	payload: schemas.OrgSettingsUpdateRequest,
	service: OrgSettingsService = Depends(get_org_settings_service),
) -> schemas.OrgSettingsResponse:
	updated = await service.update_settings(payload.to_changes())
	return schemas.OrgSettingsResponse.model_validate(updated)


@router.get("/stats", response_model=schemas.DataStatsResponse)
async def data_stats_endpoint(
	service: OrgSettingsService = Depends(get_org_settings_service),
) -> schemas.DataStatsResponse:
	return schemas.DataStatsResponse(**await service.data_stats())
