"""Charity event endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from roundtable.api.deps import get_ledger_service
from roundtable.domain.membership import schemas
from roundtable.domain.membership.ledger import LedgerService

router = APIRouter(prefix="/charity-events", tags=["charity-events"])


@router.post("", response_model=schemas.CharityEventResponse, status_code=status.HTTP_201_CREATED)
async def create_charity_event_endpoint(
	payload: schemas.CharityEventCreateRequest,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.CharityEventResponse:
	event = await ledger.create_charity_event(
		event_name=payload.event_name,
		event_date=payload.event_date,
		description=payload.description,
		participant_ids=payload.participant_ids,
	)
	return schemas.CharityEventResponse.model_validate(event)


@router.get("", response_model=List[schemas.CharityEventResponse])
async def list_charity_events_endpoint(
	ledger: LedgerService = Depends(get_ledger_service),
) -> List[schemas.CharityEventResponse]:
	return [schemas.CharityEventResponse.model_validate(event) for event in await ledger.list_charity_events()]


@router.get("/{event_id}", response_model=schemas.CharityEventResponse)
async def get_charity_event_endpoint(
	event_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.CharityEventResponse:
	return schemas.CharityEventResponse.model_validate(await ledger.get_charity_event(event_id))


@router.patch("/{event_id}", response_model=schemas.CharityEventResponse)
async def update_charity_event_endpoint(
	event_id: UUID,
	payload: schemas.CharityEventUpdateRequest,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.CharityEventResponse:
	event = await ledger.update_charity_event(event_id, payload.model_dump(exclude_unset=True))
	return schemas.CharityEventResponse.model_validate(event)


@router.put("/{event_id}/participants", response_model=schemas.CharityEventResponse)
async def record_participation_endpoint(
	event_id: UUID,
	payload: schemas.CharityParticipationRequest,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.CharityEventResponse:
	event = await ledger.record_charity_participation(event_id, payload.participant_ids)
	return schemas.CharityEventResponse.model_validate(event)


@router.delete("/{event_id}", status_code=204, response_class=Response, response_model=None)
async def delete_charity_event_endpoint(
	event_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> None:
	await ledger.delete_charity_event(event_id)
	return None
