"""Guest endpoints: roster, guest events, eligibility and promotion."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from roundtable.api.deps import (
	get_ledger_service,
	get_promotion_orchestrator,
	get_roster_service,
	is_admin,
)
from roundtable.domain.membership import schemas
from roundtable.domain.membership.ledger import LedgerService
from roundtable.domain.membership.promotion import PromotionOrchestrator
from roundtable.domain.membership.roster import RosterService

router = APIRouter(prefix="/guests", tags=["guests"])


@router.post("", response_model=schemas.GuestResponse, status_code=status.HTTP_201_CREATED)
async def create_guest_endpoint(
	payload: schemas.GuestCreateRequest,
	roster: RosterService = Depends(get_roster_service),
) -> schemas.GuestResponse:
	guest = await roster.create_guest(**payload.model_dump())
	return schemas.GuestResponse.model_validate(guest)


@router.get("", response_model=List[schemas.GuestResponse])
async def list_guests_endpoint(
	status_filter: Optional[str] = Query(default=None, alias="status"),
	roster: RosterService = Depends(get_roster_service),
) -> List[schemas.GuestResponse]:
	guests = await roster.list_guests(status=status_filter)
	return [schemas.GuestResponse.model_validate(guest) for guest in guests]


@router.get("/{guest_id}", response_model=schemas.GuestResponse)
async def get_guest_endpoint(
	guest_id: UUID,
	roster: RosterService = Depends(get_roster_service),
) -> schemas.GuestResponse:
	return schemas.GuestResponse.model_validate(await roster.get_guest(guest_id))


@router.patch("/{guest_id}", response_model=schemas.GuestResponse)
async def update_guest_endpoint(
	guest_id: UUID,
	payload: schemas.GuestUpdateRequest,
	roster: RosterService = Depends(get_roster_service),
) -> schemas.GuestResponse:
	guest = await roster.update_guest(guest_id, payload.model_dump(exclude_unset=True))
	return schemas.GuestResponse.model_validate(guest)


@router.delete("/{guest_id}", status_code=204, response_class=Response, response_model=None)
async def delete_guest_endpoint(
	guest_id: UUID,
	roster: RosterService = Depends(get_roster_service),
) -> None:
	await roster.delete_guest(guest_id)
	return None


@router.get("/{guest_id}/eligibility", response_model=schemas.GuestEligibilityResponse)
async def guest_eligibility_endpoint(
	guest_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.GuestEligibilityResponse:
	result = await ledger.get_guest_eligibility(guest_id)
	return schemas.GuestEligibilityResponse(
		guest_id=result.guest_id,
		present_count=result.present_count,
		charity_count=result.charity_count,
		eligible=result.eligible,
		missing=list(result.missing),
	)


@router.post(
	"/{guest_id}/events",
	response_model=schemas.GuestEventResponse,
	status_code=status.HTTP_201_CREATED,
)
async def record_guest_event_endpoint(
	guest_id: UUID,
	payload: schemas.GuestEventCreateRequest,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.GuestEventResponse:
	event = await ledger.record_guest_event(
		guest_id,
		event_name=payload.event_name,
		event_date=payload.event_date,
		contribution=payload.contribution,
	)
	return schemas.GuestEventResponse.model_validate(event)


@router.get("/{guest_id}/events", response_model=List[schemas.GuestEventResponse])
async def list_guest_events_endpoint(
	guest_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> List[schemas.GuestEventResponse]:
	return [schemas.GuestEventResponse.model_validate(event) for event in await ledger.list_guest_events(guest_id)]


@router.delete(
	"/{guest_id}/events/{event_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def delete_guest_event_endpoint(
	guest_id: UUID,
	event_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> None:
	await ledger.delete_guest_event(event_id, guest_id=guest_id)
	return None


@router.post(
	"/{guest_id}/promote",
	response_model=schemas.PipelinerResponse,
	status_code=status.HTTP_201_CREATED,
)
async def promote_guest_endpoint(
	guest_id: UUID,
	payload: schemas.PromoteGuestRequest,
	admin: bool = Depends(is_admin),
	orchestrator: PromotionOrchestrator = Depends(get_promotion_orchestrator),
) -> schemas.PipelinerResponse:
	if payload.override and not admin:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="override_requires_admin")
	pipeliner = await orchestrator.promote_guest_to_pipeliner(
		guest_id,
		payload.sponsor_member_id,
		notes=payload.notes,
		override=payload.override,
	)
	return schemas.PipelinerResponse.model_validate(pipeliner)


@router.post("/{guest_id}/deactivate", response_model=schemas.GuestResponse)
async def deactivate_guest_endpoint(
	guest_id: UUID,
	orchestrator: PromotionOrchestrator = Depends(get_promotion_orchestrator),
) -> schemas.GuestResponse:
	return schemas.GuestResponse.model_validate(await orchestrator.deactivate_guest(guest_id))
