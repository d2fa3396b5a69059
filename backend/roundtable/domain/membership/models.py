"""Domain models for the membership ledgers and subjects."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def month_name(value: date) -> str:
	return calendar.month_name[value.month]


class MeetingType(str, Enum):
	BUSINESS = "business"
	CHARITY = "charity"
	SPECIAL = "special"


class AttendanceStatus(str, Enum):
	PRESENT = "present"
	APOLOGY = "apology"
	ABSENT = "absent"


class SubjectKind(str, Enum):
	MEMBER = "member"
	GUEST = "guest"
	PIPELINER = "pipeliner"


class GuestStatus(str, Enum):
	ACTIVE = "active"
	BECAME_PIPELINER = "became_pipeliner"
	INACTIVE = "inactive"


class PipelinerStatus(str, Enum):
	ACTIVE = "active"
	BECAME_MEMBER = "became_member"
	INACTIVE = "inactive"


class MemberStatus(str, Enum):
	ACTIVE = "active"
	INACTIVE = "inactive"


@dataclass(frozen=True)
class Subject:
	"""Reference to the person an attendance row points at."""

	kind: SubjectKind
	id: UUID

	@classmethod
	def member(cls, subject_id: UUID) -> "Subject":
		return cls(SubjectKind.MEMBER, subject_id)

	@classmethod
	def guest(cls, subject_id: UUID) -> "Subject":
		return cls(SubjectKind.GUEST, subject_id)

	@classmethod
	def pipeliner(cls, subject_id: UUID) -> "Subject":
		return cls(SubjectKind.PIPELINER, subject_id)

	@property
	def lock_key(self) -> Tuple[str, str]:
		return (str(self.id), self.kind.value)


@dataclass(slots=True)
class Meeting:
	id: UUID
	meeting_date: date
	meeting_type: MeetingType = MeetingType.BUSINESS
	location: Optional[str] = None
	notes: Optional[str] = None
	created_at: datetime = field(default_factory=utcnow)
	updated_at: datetime = field(default_factory=utcnow)

	@property
	def meeting_month(self) -> str:
		return month_name(self.meeting_date)

	@property
	def meeting_year(self) -> int:
		return self.meeting_date.year


@dataclass(slots=True)
class AttendanceRecord:
	id: UUID
	meeting_id: UUID
	subject: Subject
	status: AttendanceStatus
	notes: Optional[str] = None
	created_at: datetime = field(default_factory=utcnow)

	@property
	def is_present(self) -> bool:
		return self.status == AttendanceStatus.PRESENT


@dataclass(slots=True)
class Guest:
	id: UUID
	full_name: str
	email: Optional[str] = None
	phone: Optional[str] = None
	status: GuestStatus = GuestStatus.ACTIVE
	invited_by: Optional[UUID] = None
	# derived from the attendance ledger
	total_meetings: int = 0
	first_attendance: Optional[date] = None
	notes: Optional[str] = None
	created_at: datetime = field(default_factory=utcnow)
	updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Pipeliner:
	id: UUID
	full_name: str
	email: Optional[str] = None
	phone: Optional[str] = None
	promoted_from_guest_date: Optional[date] = None
	promoted_from_guest_id: Optional[UUID] = None
	status: PipelinerStatus = PipelinerStatus.ACTIVE
	sponsored_by: Optional[UUID] = None
	guest_meetings_count: int = 0
	# derived from the attendance and charity ledgers
	business_meetings_count: int = 0
	charity_events_count: int = 0
	is_eligible_for_membership: bool = False
	notes: Optional[str] = None
	created_at: datetime = field(default_factory=utcnow)
	updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Member:
	id: UUID
	full_name: str
	email: str
	join_date: date
	phone: Optional[str] = None
	member_number: Optional[str] = None
	status: MemberStatus = MemberStatus.ACTIVE
	created_at: datetime = field(default_factory=utcnow)
	updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class CharityEvent:
	id: UUID
	event_name: str
	event_date: date
	description: Optional[str] = None
	participant_ids: Tuple[UUID, ...] = ()
	created_at: datetime = field(default_factory=utcnow)
	updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class GuestEvent:
	id: UUID
	guest_id: UUID
	event_name: str
	event_date: date
	contribution: Optional[str] = None
	created_at: datetime = field(default_factory=utcnow)


def unique_ids(values) -> Tuple[UUID, ...]:
	"""Drop repeated ids while keeping first-seen order."""
	seen: set[UUID] = set()
	ordered: list[UUID] = []
	for value in values:
		if value in seen:
			continue
		seen.add(value)
		ordered.append(value)
	return tuple(ordered)


@dataclass(slots=True)
class AppSetting:
	"""One row of the organisation settings table: an integer or a text value per key."""

	key: str
	value: Optional[int] = None
	text_value: Optional[str] = None
	updated_at: datetime = field(default_factory=utcnow)
