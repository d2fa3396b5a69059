"""Read-side attendance statistics and summaries.

Nothing here is persisted; every figure is recomputed from the ledgers when
requested.
"""

from __future__ import annotations

import calendar
import math
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set
from uuid import UUID

from roundtable.domain.membership import eligibility
from roundtable.domain.membership.exceptions import ValidationError
from roundtable.domain.membership.models import (
	AttendanceStatus,
	MeetingType,
	MemberStatus,
	PipelinerStatus,
	SubjectKind,
	month_name,
)
from roundtable.domain.membership.org_settings import load_org_settings
from roundtable.domain.membership.repository import MembershipRepository

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})(?:-(\d{2}))?$")


@dataclass(slots=True, frozen=True)
class MonthlyAttendanceStats:
	month: str
	month_name: str
	year: int
	active_members: int
	attended_last_meeting: int
	attendance_rate: float
	yearly_average: float
	pipeliner_present_count: int
	pipeliner_attendance_rate: float
	pipeliners: int
	meeting_attendance_count: int
	meeting_attendance_percentage: float


@dataclass(slots=True, frozen=True)
class MemberAttendanceSummary:
	member_id: UUID
	full_name: str
	member_number: Optional[str]
	status: str
	total_meetings: int
	present_count: int
	apology_count: int
	absent_count: int
	last_meeting_date: Optional[date]
	attendance_rate: float
	band: str


@dataclass(slots=True, frozen=True)
class GuestMeetingCount:
	guest_id: UUID
	full_name: str
	status: str
	total_meetings: int
	meeting_count: int
	present_count: int
	apology_count: int
	absent_count: int
	event_count: int
	eligible_for_pipeliner: bool


@dataclass(slots=True, frozen=True)
class PipelinerEligibilityRow:
	pipeliner_id: UUID
	full_name: str
	status: str
	guest_meetings_count: int
	business_meetings_count: int
	charity_events_count: int
	is_eligible_for_membership: bool
	meets_requirements: bool
	missing: List[str]


@dataclass(slots=True, frozen=True)
class MeetingAttendanceSummary:
	meeting_id: UUID
	meeting_date: date
	meeting_type: str
	total: int
	present: int
	apology: int
	absent: int


def round_rate(value: float) -> float:
	return round(value, 2) if math.isfinite(value) else 0.0


def parse_month(value: str) -> date:
	"""Accept ``YYYY-MM`` or ``YYYY-MM-DD`` and return the date it names."""
	match = _MONTH_RE.match((value or "").strip())
	if not match:
		raise ValidationError("Invalid month provided.", code="invalid_month")
	year, month, day = int(match.group(1)), int(match.group(2)), int(match.group(3) or 1)
	try:
		return date(year, month, day)
	except ValueError:
		raise ValidationError("Invalid month provided.", code="invalid_month") from None


def attendance_band(rate: float, *, good: float, warning: float) -> str:
	if rate >= good:
		return "good"
	if rate >= warning:
		return "warning"
	return "critical"


class _StatusCounts:
	__slots__ = ("total", "present", "apology", "absent", "last_date")

	def __init__(self) -> None:
		self.total = 0
		self.present = 0
		self.apology = 0
		self.absent = 0
		self.last_date: Optional[date] = None

	def add(self, status: AttendanceStatus, when: Optional[date] = None) -> None:
		self.total += 1
		if status == AttendanceStatus.PRESENT:
			self.present += 1
		elif status == AttendanceStatus.APOLOGY:
			self.apology += 1
		else:
			self.absent += 1
		if when is not None and (self.last_date is None or when > self.last_date):
			self.last_date = when


class ReportingAggregator:
	def __init__(
		self,
		repository: MembershipRepository,
		*,
		good_threshold: float | None = None,
		warning_threshold: float | None = None,
	) -> None:
		self._repo = repository
		# explicit thresholds pin the bands; otherwise stored organisation settings apply
		self._good = good_threshold
		self._warning = warning_threshold

	async def get_monthly_attendance_stats(self, month: str, today: Optional[date] = None) -> MonthlyAttendanceStats:
		target = parse_month(month)
		today = today or date.today()
		month_start = target.replace(day=1)
		month_end = target.replace(day=calendar.monthrange(target.year, target.month)[1])
		year_start = date(target.year, 1, 1)
		year_end = min(month_end, today)

		async with self._repo.transaction() as session:
			members = await session.list_members(status=MemberStatus.ACTIVE.value)
			active_member_ids = {member.id for member in members if member.member_number}
			active_pipeliners = len(await session.list_pipeliners(status=PipelinerStatus.ACTIVE.value))
			month_meetings = await session.list_meetings(start=month_start, end=month_end)
			year_meetings = [
				meeting
				for meeting in await session.list_meetings(start=year_start, end=year_end)
				if meeting.meeting_date <= today
			]
			month_rows = (
				await session.list_attendance(meeting_ids=[meeting.id for meeting in month_meetings])
				if month_meetings
				else []
			)
			year_rows = (
				await session.list_attendance(meeting_ids=[meeting.id for meeting in year_meetings])
				if year_meetings
				else []
			)

		active_members = len(active_member_ids)
		monthly_attendees: Set[UUID] = set()
		attendees_by_meeting: Dict[UUID, Set[UUID]] = defaultdict(set)
		pipeliner_present = 0
		for row in month_rows:
			if row.status != AttendanceStatus.PRESENT:
				continue
			if row.subject.kind == SubjectKind.MEMBER:
				monthly_attendees.add(row.subject.id)
				attendees_by_meeting[row.meeting_id].add(row.subject.id)
			elif row.subject.kind == SubjectKind.PIPELINER:
				pipeliner_present += 1

		meeting_percentage = 0.0
		pipeliner_rate = 0.0
		attended_last = 0
		if month_meetings:
			if active_members:
				meeting_percentage = len(monthly_attendees) / active_members * 100
			if active_pipeliners:
				pipeliner_rate = pipeliner_present / (active_pipeliners * len(month_meetings)) * 100
			ordered = sorted(month_meetings, key=lambda meeting: meeting.meeting_date)
			business = [meeting for meeting in ordered if meeting.meeting_type == MeetingType.BUSINESS]
			last_meeting = business[-1] if business else ordered[-1]
			attended_last = len(attendees_by_meeting.get(last_meeting.id, ()))

		per_member: Dict[UUID, _StatusCounts] = defaultdict(_StatusCounts)
		for row in year_rows:
			if row.subject.kind != SubjectKind.MEMBER or row.subject.id not in active_member_ids:
				continue
			per_member[row.subject.id].add(row.status)
		averages = [counts.present / counts.total * 100 for counts in per_member.values() if counts.total]
		yearly_average = sum(averages) / len(averages) if averages else 0.0

		return MonthlyAttendanceStats(
			month=f"{target.year:04d}-{target.month:02d}",
			month_name=month_name(target),
			year=target.year,
			active_members=active_members,
			attended_last_meeting=attended_last,
			attendance_rate=round_rate(meeting_percentage),
			yearly_average=round_rate(yearly_average),
			pipeliner_present_count=pipeliner_present,
			pipeliner_attendance_rate=round_rate(pipeliner_rate),
			pipeliners=active_pipeliners,
			meeting_attendance_count=len(monthly_attendees),
			meeting_attendance_percentage=round_rate(meeting_percentage),
		)

	async def member_attendance_summary(self) -> List[MemberAttendanceSummary]:
		async with self._repo.transaction() as session:
			members = await session.list_members()
			meetings = {meeting.id: meeting for meeting in await session.list_meetings()}
			rows = await session.list_attendance()
			org = await load_org_settings(session)
		good = org.attendance_good_threshold if self._good is None else self._good
		warning = org.attendance_warning_threshold if self._warning is None else self._warning

		counts: Dict[UUID, _StatusCounts] = defaultdict(_StatusCounts)
		for row in rows:
			if row.subject.kind != SubjectKind.MEMBER:
				continue
			meeting = meetings.get(row.meeting_id)
			counts[row.subject.id].add(row.status, meeting.meeting_date if meeting else None)

		summaries = []
		for member in members:
			stats = counts.get(member.id) or _StatusCounts()
			rate = round_rate(stats.present / stats.total * 100) if stats.total else 0.0
			summaries.append(
				MemberAttendanceSummary(
					member_id=member.id,
					full_name=member.full_name,
					member_number=member.member_number,
					status=member.status.value,
					total_meetings=stats.total,
					present_count=stats.present,
					apology_count=stats.apology,
					absent_count=stats.absent,
					last_meeting_date=stats.last_date,
					attendance_rate=rate,
					band=attendance_band(rate, good=good, warning=warning),
				)
			)
		return summaries

	async def guest_meeting_counts(self) -> List[GuestMeetingCount]:
		async with self._repo.transaction() as session:
			guests = await session.list_guests()
			rows = await session.list_attendance()
			events = await session.list_guest_events()

		counts: Dict[UUID, _StatusCounts] = defaultdict(_StatusCounts)
		for row in rows:
			if row.subject.kind == SubjectKind.GUEST:
				counts[row.subject.id].add(row.status)
		event_counts: Dict[UUID, int] = defaultdict(int)
		for event in events:
			event_counts[event.guest_id] += 1

		result = []
		for guest in guests:
			stats = counts.get(guest.id) or _StatusCounts()
			result.append(
				GuestMeetingCount(
					guest_id=guest.id,
					full_name=guest.full_name,
					status=guest.status.value,
					total_meetings=guest.total_meetings,
					meeting_count=stats.total,
					present_count=stats.present,
					apology_count=stats.apology,
					absent_count=stats.absent,
					event_count=event_counts[guest.id],
					eligible_for_pipeliner=eligibility.guest_eligible_for_pipeliner(
						stats.present, event_counts[guest.id]
					),
				)
			)
		return result

	async def pipeliner_eligibility(self) -> List[PipelinerEligibilityRow]:
		async with self._repo.transaction() as session:
			pipeliners = await session.list_pipeliners()

		return [
			PipelinerEligibilityRow(
				pipeliner_id=pipeliner.id,
				full_name=pipeliner.full_name,
				status=pipeliner.status.value,
				guest_meetings_count=pipeliner.guest_meetings_count,
				business_meetings_count=pipeliner.business_meetings_count,
				charity_events_count=pipeliner.charity_events_count,
				is_eligible_for_membership=pipeliner.is_eligible_for_membership,
				meets_requirements=eligibility.pipeliner_eligible_for_membership(
					pipeliner.business_meetings_count, pipeliner.charity_events_count
				),
				missing=eligibility.missing_requirements(
					pipeliner.business_meetings_count, pipeliner.charity_events_count, "business meeting"
				),
			)
			for pipeliner in pipeliners
		]

	async def meeting_attendance_summary(
		self, meeting_ids: Optional[Iterable[UUID]] = None
	) -> List[MeetingAttendanceSummary]:
		wanted = set(meeting_ids) if meeting_ids is not None else None
		async with self._repo.transaction() as session:
			meetings: Sequence = [
				meeting for meeting in await session.list_meetings() if wanted is None or meeting.id in wanted
			]
			rows = (
				await session.list_attendance(meeting_ids=[meeting.id for meeting in meetings]) if meetings else []
			)

		counts: Dict[UUID, _StatusCounts] = defaultdict(_StatusCounts)
		for row in rows:
			counts[row.meeting_id].add(row.status)
		result = []
		for meeting in meetings:
			stats = counts.get(meeting.id) or _StatusCounts()
			result.append(
				MeetingAttendanceSummary(
					meeting_id=meeting.id,
					meeting_date=meeting.meeting_date,
					meeting_type=meeting.meeting_type.value,
					total=stats.total,
					present=stats.present,
					apology=stats.apology,
					absent=stats.absent,
				)
			)
		return result
