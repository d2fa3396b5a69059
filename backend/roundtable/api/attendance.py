"""Attendance ledger endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from roundtable.api.deps import get_ledger_service
from roundtable.domain.membership import schemas
from roundtable.domain.membership.ledger import LedgerService
from roundtable.domain.membership.models import Subject

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("", response_model=schemas.AttendanceResponse, status_code=status.HTTP_201_CREATED)
async def record_attendance_endpoint(
	payload: schemas.AttendanceCreateRequest,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.AttendanceResponse:
	record = await ledger.record_attendance(
		payload.meeting_id,
		payload.subject_kind.value,
		payload.subject_id,
		payload.status.value,
		payload.notes,
	)
	return schemas.AttendanceResponse.from_record(record)


@router.patch("/{record_id}", response_model=schemas.AttendanceResponse)
async def update_attendance_endpoint(
	record_id: UUID,
	payload: schemas.AttendanceUpdateRequest,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.AttendanceResponse:
	changes = payload.model_dump(exclude_unset=True, exclude={"subject"})
	if payload.subject is not None:
		changes["subject"] = Subject(payload.subject.kind, payload.subject.id)
	record = await ledger.update_attendance(record_id, changes)
	return schemas.AttendanceResponse.from_record(record)


@router.delete("/{record_id}", status_code=204, response_class=Response, response_model=None)
async def delete_attendance_endpoint(
	record_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> None:
	await ledger.delete_attendance(record_id)
	return None
