"""Member endpoints."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from roundtable.api.deps import get_roster_service
from roundtable.domain.membership import schemas
from roundtable.domain.membership.roster import RosterService

router = APIRouter(prefix="/members", tags=["members"])


@router.post("", response_model=schemas.MemberResponse, status_code=status.HTTP_201_CREATED)
async def create_member_endpoint(
	payload: schemas.MemberCreateRequest,
	roster: RosterService = Depends(get_roster_service),
) -> schemas.MemberResponse:
	data = payload.model_dump()
	data["status"] = payload.status.value
	return schemas.MemberResponse.model_validate(await roster.create_member(**data))


@router.get("", response_model=List[schemas.MemberResponse])
async def list_members_endpoint(
	status_filter: Optional[str] = Query(default=None, alias="status"),
	roster: RosterService = Depends(get_roster_service),
) -> List[schemas.MemberResponse]:
	members = await roster.list_members(status=status_filter)
	return [schemas.MemberResponse.model_validate(member) for member in members]


@router.get("/{member_id}", response_model=schemas.MemberResponse)
async def get_member_endpoint(
	member_id: UUID,
	roster: RosterService = Depends(get_roster_service),
) -> schemas.MemberResponse:
	return schemas.MemberResponse.model_validate(await roster.get_member(member_id))


@router.patch("/{member_id}", response_model=schemas.MemberResponse)
async def update_member_endpoint(
	member_id: UUID,
	payload: schemas.MemberUpdateRequest,
	roster: RosterService = Depends(get_roster_service),
) -> schemas.MemberResponse:
	member = await roster.update_member(member_id, payload.model_dump(exclude_unset=True))
	return schemas.MemberResponse.model_validate(member)


@router.delete("/{member_id}", status_code=204, response_class=Response, response_model=None)
async def delete_member_endpoint(
	member_id: UUID,
	roster: RosterService = Depends(get_roster_service),
) -> None:
	await roster.delete_member(member_id)
	return None
