"""Meeting endpoints."""

from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from roundtable.api.deps import get_ledger_service
from roundtable.domain.membership import schemas
from roundtable.domain.membership.ledger import LedgerService

router = APIRouter(prefix="/meetings", tags=["meetings"])


@router.post("", response_model=schemas.MeetingResponse, status_code=status.HTTP_201_CREATED)
async def create_meeting_endpoint(
	payload: schemas.MeetingCreateRequest,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.MeetingResponse:
	meeting = await ledger.create_meeting(
		meeting_date=payload.meeting_date,
		meeting_type=payload.meeting_type.value,
		location=payload.location,
		notes=payload.notes,
	)
	return schemas.MeetingResponse.model_validate(meeting)


@router.get("", response_model=List[schemas.MeetingResponse])
async def list_meetings_endpoint(
	start: Optional[date] = None,
	end: Optional[date] = None,
	meeting_type: Optional[str] = None,
	ledger: LedgerService = Depends(get_ledger_service),
) -> List[schemas.MeetingResponse]:
	meetings = await ledger.list_meetings(start=start, end=end, meeting_type=meeting_type)
	return [schemas.MeetingResponse.model_validate(meeting) for meeting in meetings]


@router.get("/{meeting_id}", response_model=schemas.MeetingResponse)
async def get_meeting_endpoint(
	meeting_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.MeetingResponse:
	return schemas.MeetingResponse.model_validate(await ledger.get_meeting(meeting_id))


@router.patch("/{meeting_id}", response_model=schemas.MeetingResponse)
async def update_meeting_endpoint(
	meeting_id: UUID,
	payload: schemas.MeetingUpdateRequest,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.MeetingResponse:
	meeting = await ledger.update_meeting(meeting_id, payload.model_dump(exclude_unset=True))
	return schemas.MeetingResponse.model_validate(meeting)


@router.delete("/{meeting_id}", status_code=204, response_class=Response, response_model=None)
async def delete_meeting_endpoint(
	meeting_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> None:
	await ledger.delete_meeting(meeting_id)
	return None


@router.get("/{meeting_id}/attendance", response_model=List[schemas.AttendanceResponse])
async def list_meeting_attendance_endpoint(
	meeting_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> List[schemas.AttendanceResponse]:
	records = await ledger.list_attendance(meeting_id=meeting_id)
	return [schemas.AttendanceResponse.from_record(record) for record in records]
