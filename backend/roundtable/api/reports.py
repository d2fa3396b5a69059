"""Read-only attendance reports."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from roundtable.api.deps import get_ledger_service, get_reporting_aggregator, require_admin
from roundtable.domain.membership import schemas
from roundtable.domain.membership.ledger import LedgerService
from roundtable.domain.membership.reporting import ReportingAggregator

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/monthly", response_model=schemas.MonthlyAttendanceStatsResponse)
async def monthly_stats_endpoint(
	month: str = Query(..., description="YYYY-MM or YYYY-MM-DD"),
	reporting: ReportingAggregator = Depends(get_reporting_aggregator),
) -> schemas.MonthlyAttendanceStatsResponse:
	stats = await reporting.get_monthly_attendance_stats(month)
	return schemas.MonthlyAttendanceStatsResponse.model_validate(stats)


@router.get("/members", response_model=List[schemas.MemberAttendanceSummaryResponse])
async def member_summary_endpoint(
	reporting: ReportingAggregator = Depends(get_reporting_aggregator),
) -> List[schemas.MemberAttendanceSummaryResponse]:
	rows = await reporting.member_attendance_summary()
	return [schemas.MemberAttendanceSummaryResponse.model_validate(row) for row in rows]


@router.get("/guests", response_model=List[schemas.GuestMeetingCountResponse])
async def guest_counts_endpoint(
	reporting: ReportingAggregator = Depends(get_reporting_aggregator),
) -> List[schemas.GuestMeetingCountResponse]:
	rows = await reporting.guest_meeting_counts()
	return [schemas.GuestMeetingCountResponse.model_validate(row) for row in rows]


@router.get("/pipeliners", response_model=List[schemas.PipelinerEligibilityRowResponse])
async def pipeliner_eligibility_endpoint(
	reporting: ReportingAggregator = Depends(get_reporting_aggregator),
) -> List[schemas.PipelinerEligibilityRowResponse]:
	rows = await reporting.pipeliner_eligibility()
	return [schemas.PipelinerEligibilityRowResponse.model_validate(row) for row in rows]


@router.get("/meetings", response_model=List[schemas.MeetingAttendanceSummaryResponse])
async def meeting_summary_endpoint(
	meeting_id: Optional[List[UUID]] = Query(default=None),
	reporting: ReportingAggregator = Depends(get_reporting_aggregator),
) -> List[schemas.MeetingAttendanceSummaryResponse]:
	rows = await reporting.meeting_attendance_summary(meeting_id)
	return [schemas.MeetingAttendanceSummaryResponse.model_validate(row) for row in rows]


@router.post(
	"/recompute",
	response_model=schemas.RecomputeResponse,
	dependencies=[Depends(require_admin)],
)
async def recompute_endpoint(
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.RecomputeResponse:
	return schemas.RecomputeResponse.model_validate(await ledger.recompute_all())
