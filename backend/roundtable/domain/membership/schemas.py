"""Pydantic schemas for the membership API."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from roundtable.domain.membership.models import (
	AttendanceRecord,
	AttendanceStatus,
	GuestStatus,
	MeetingType,
	MemberStatus,
	PipelinerStatus,
	SubjectKind,
)


class _FromDomain(BaseModel):
	model_config = ConfigDict(from_attributes=True)


# meetings


class MeetingCreateRequest(BaseModel):
	meeting_date: date
	meeting_type: MeetingType = MeetingType.BUSINESS
	location: Optional[str] = Field(default=None, max_length=200)
	notes: Optional[str] = Field(default=None, max_length=4000)


class MeetingUpdateRequest(BaseModel):
	meeting_date: Optional[date] = None
	meeting_type: Optional[MeetingType] = None
	location: Optional[str] = Field(default=None, max_length=200)
	notes: Optional[str] = Field(default=None, max_length=4000)


class MeetingResponse(_FromDomain):
	id: UUID
	meeting_date: date
	meeting_month: str
	meeting_year: int
	meeting_type: MeetingType
	location: Optional[str] = None
	notes: Optional[str] = None
	created_at: datetime
	updated_at: datetime


# attendance


class SubjectRef(BaseModel):
	kind: SubjectKind
	id: UUID


class AttendanceCreateRequest(BaseModel):
	meeting_id: UUID
	subject_kind: SubjectKind
	subject_id: UUID
	status: AttendanceStatus
	notes: Optional[str] = Field(default=None, max_length=2000)


class AttendanceUpdateRequest(BaseModel):
	status: Optional[AttendanceStatus] = None
	notes: Optional[str] = Field(default=None, max_length=2000)
	subject: Optional[SubjectRef] = None


class AttendanceResponse(BaseModel):
	id: UUID
	meeting_id: UUID
	subject_kind: SubjectKind
	subject_id: UUID
	status: AttendanceStatus
	notes: Optional[str] = None
	created_at: datetime

	@classmethod
	def from_record(cls, record: AttendanceRecord) -> "AttendanceResponse":
		return cls(
			id=record.id,
			meeting_id=record.meeting_id,
			subject_kind=record.subject.kind,
			subject_id=record.subject.id,
			status=record.status,
			notes=record.notes,
			created_at=record.created_at,
		)


# charity and guest events


class CharityEventCreateRequest(BaseModel):
	event_name: str = Field(..., min_length=1, max_length=200)
	event_date: date
	description: Optional[str] = Field(default=None, max_length=4000)
	participant_ids: List[UUID] = Field(default_factory=list)


class CharityEventUpdateRequest(BaseModel):
	event_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
	event_date: Optional[date] = None
	description: Optional[str] = Field(default=None, max_length=4000)
	participant_ids: Optional[List[UUID]] = None


class CharityParticipationRequest(BaseModel):
	participant_ids: List[UUID] = Field(default_factory=list)


class CharityEventResponse(_FromDomain):
	id: UUID
	event_name: str
	event_date: date
	description: Optional[str] = None
	participant_ids: List[UUID]
	created_at: datetime
	updated_at: datetime


class GuestEventCreateRequest(BaseModel):
	event_name: str = Field(..., min_length=1, max_length=200)
	event_date: date
	contribution: Optional[str] = Field(default=None, max_length=2000)


class GuestEventResponse(_FromDomain):
	id: UUID
	guest_id: UUID
	event_name: str
	event_date: date
	contribution: Optional[str] = None
	created_at: datetime


# subjects


class GuestCreateRequest(BaseModel):
	full_name: str = Field(..., min_length=1, max_length=200)
	email: Optional[str] = Field(default=None, max_length=320)
	phone: Optional[str] = Field(default=None, max_length=50)
	invited_by: Optional[UUID] = None
	notes: Optional[str] = Field(default=None, max_length=4000)


class GuestUpdateRequest(BaseModel):
	full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
	email: Optional[str] = Field(default=None, max_length=320)
	phone: Optional[str] = Field(default=None, max_length=50)
	invited_by: Optional[UUID] = None
	notes: Optional[str] = Field(default=None, max_length=4000)


class GuestResponse(_FromDomain):
	id: UUID
	full_name: str
	email: Optional[str] = None
	phone: Optional[str] = None
	status: GuestStatus
	invited_by: Optional[UUID] = None
	total_meetings: int
	first_attendance: Optional[date] = None
	notes: Optional[str] = None
	created_at: datetime
	updated_at: datetime


class PipelinerCreateRequest(BaseModel):
	full_name: str = Field(..., min_length=1, max_length=200)
	email: Optional[str] = Field(default=None, max_length=320)
	phone: Optional[str] = Field(default=None, max_length=50)
	sponsored_by: Optional[UUID] = None
	guest_meetings_count: int = Field(default=0, ge=0)
	notes: Optional[str] = Field(default=None, max_length=4000)


class PipelinerUpdateRequest(BaseModel):
	full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
	email: Optional[str] = Field(default=None, max_length=320)
	phone: Optional[str] = Field(default=None, max_length=50)
	sponsored_by: Optional[UUID] = None
	notes: Optional[str] = Field(default=None, max_length=4000)


class PipelinerResponse(_FromDomain):
	id: UUID
	full_name: str
	email: Optional[str] = None
	phone: Optional[str] = None
	promoted_from_guest_date: Optional[date] = None
	promoted_from_guest_id: Optional[UUID] = None
	status: PipelinerStatus
	sponsored_by: Optional[UUID] = None
	guest_meetings_count: int
	business_meetings_count: int
	charity_events_count: int
	is_eligible_for_membership: bool
	notes: Optional[str] = None
	created_at: datetime
	updated_at: datetime


class MemberCreateRequest(BaseModel):
	full_name: str = Field(..., min_length=1, max_length=200)
	email: str = Field(..., max_length=320)
	phone: Optional[str] = Field(default=None, max_length=50)
	member_number: Optional[str] = Field(default=None, max_length=50)
	join_date: date
	status: MemberStatus = MemberStatus.ACTIVE


class MemberUpdateRequest(BaseModel):
	full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
	email: Optional[str] = Field(default=None, max_length=320)
	phone: Optional[str] = Field(default=None, max_length=50)
	member_number: Optional[str] = Field(default=None, max_length=50)
	join_date: Optional[date] = None
	status: Optional[MemberStatus] = None


class MemberResponse(_FromDomain):
	id: UUID
	full_name: str
	email: str
	phone: Optional[str] = None
	member_number: Optional[str] = None
	join_date: date
	status: MemberStatus
	created_at: datetime
	updated_at: datetime


# promotions and eligibility


class PromoteGuestRequest(BaseModel):
	sponsor_member_id: UUID
	notes: Optional[str] = Field(default=None, max_length=4000)
	override: bool = False


class PromoteToMemberRequest(BaseModel):
	member_number: str = Field(..., max_length=50)
	join_date: Optional[date] = None


class GuestEligibilityResponse(BaseModel):
	guest_id: UUID
	present_count: int
	charity_count: int
	eligible: bool
	missing: List[str]


class EligibilityProgressResponse(_FromDomain):
	meetings: int
	charity_events: int
	meeting_target: int
	charity_event_target: int
	meeting_progress: float
	charity_event_progress: float
	eligible: bool


class PipelinerEligibilityResponse(_FromDomain):
	pipeliner_id: UUID
	business_count: int
	charity_count: int
	eligible: bool
	missing: List[str]
	progress: EligibilityProgressResponse


# reports


class MonthlyAttendanceStatsResponse(_FromDomain):
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


class MemberAttendanceSummaryResponse(_FromDomain):
	member_id: UUID
	full_name: str
	member_number: Optional[str] = None
	status: str
	total_meetings: int
	present_count: int
	apology_count: int
	absent_count: int
	last_meeting_date: Optional[date] = None
	attendance_rate: float
	band: str


class GuestMeetingCountResponse(_FromDomain):
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


class PipelinerEligibilityRowResponse(_FromDomain):
	pipeliner_id: UUID
	full_name: str
	status: str
	guest_meetings_count: int
	business_meetings_count: int
	charity_events_count: int
	is_eligible_for_membership: bool
	meets_requirements: bool
	missing: List[str]


class MeetingAttendanceSummaryResponse(_FromDomain):
	meeting_id: UUID
	meeting_date: date
	meeting_type: str
	total: int
	present: int
	apology: int
	absent: int


class RecomputeResponse(_FromDomain):
	guests: int
	pipeliners: int


# organisation settings


class OrgSettingsResponse(_FromDomain):
	attendance_good_threshold: float
	attendance_warning_threshold: float
	email_notifications: bool
	default_meeting_location: Optional[str] = None


class OrgSettingsUpdateRequest(BaseModel):
	attendance_good_threshold: Optional[int] = Field(default=None, ge=0, le=100)
	attendance_warning_threshold: Optional[int] = Field(default=None, ge=0, le=100)
	email_notifications: Optional[bool] = None
	default_meeting_location: Optional[str] = Field(default=None, max_length=200)

	def to_changes(self) -> dict:
		"""Map request fields onto stored setting keys, dropping unset and null values."""
		changes = {}
		for key, value in self.model_dump(exclude_unset=True).items():
			# null clears the location; null elsewhere leaves the stored value
			if value is None and key != "default_meeting_location":
				continue
			changes["notifications_email_enabled" if key == "email_notifications" else key] = value
		return changes


class DataStatsResponse(BaseModel):
	members: int = 0
	meetings: int = 0
	attendance: int = 0
	guests: int = 0
	pipeliners: int = 0
	charity_events: int = 0
	guest_events: int = 0
