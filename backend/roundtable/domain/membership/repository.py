"""Persistence contract for the membership ledgers.

A ``MembershipRepository`` hands out ``MembershipSession`` objects bound to a
single transaction. Sessions expose narrow methods: contact edits, derived
counter writes and status transitions go through separate calls so callers
cannot mix administrative and system-owned fields in one write.
"""

from __future__ import annotations

from datetime import date
from typing import Any, AsyncContextManager, Iterable, Mapping, Optional, Protocol, Sequence, Tuple
from uuid import UUID

from roundtable.domain.membership.models import (
	AppSetting,
	AttendanceRecord,
	CharityEvent,
	Guest,
	GuestEvent,
	GuestStatus,
	Meeting,
	Member,
	Pipeliner,
	PipelinerStatus,
	Subject,
)

GUEST_CONTACT_FIELDS = frozenset({"full_name", "email", "phone", "invited_by", "notes"})
PIPELINER_CONTACT_FIELDS = frozenset({"full_name", "email", "phone", "sponsored_by", "notes"})
MEMBER_FIELDS = frozenset({"full_name", "email", "phone", "member_number", "join_date", "status"})
MEETING_FIELDS = frozenset({"meeting_date", "meeting_type", "location", "notes"})
CHARITY_EVENT_FIELDS = frozenset({"event_name", "event_date", "description"})
ATTENDANCE_FIELDS = frozenset({"status", "notes", "subject"})

# tables reported by the settings data stats
DATA_TABLES = ("members", "meetings", "attendance", "guests", "pipeliners", "charity_events", "guest_events")


class MembershipSession(Protocol):
	def savepoint(self) -> AsyncContextManager[None]:
		...

	# meetings
	async def insert_meeting(self, meeting: Meeting) -> Meeting:
		...

	async def get_meeting(self, meeting_id: UUID) -> Optional[Meeting]:
		...

	async def update_meeting(self, meeting_id: UUID, changes: Mapping[str, Any]) -> Optional[Meeting]:
		...

	async def delete_meeting(self, meeting_id: UUID) -> bool:
		...

	async def list_meetings(
		self,
		*,
		start: Optional[date] = None,
		end: Optional[date] = None,
		meeting_type: Optional[str] = None,
	) -> Sequence[Meeting]:
		...

	# attendance ledger
	async def insert_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
		...

	async def get_attendance(self, record_id: UUID) -> Optional[AttendanceRecord]:
		...

	async def update_attendance(self, record_id: UUID, changes: Mapping[str, Any]) -> Optional[AttendanceRecord]:
		...

	async def delete_attendance(self, record_id: UUID) -> bool:
		...

	async def list_attendance(
		self,
		*,
		meeting_ids: Optional[Iterable[UUID]] = None,
		subject: Optional[Subject] = None,
	) -> Sequence[AttendanceRecord]:
		...

	async def present_stats(self, subject: Subject) -> Tuple[int, Optional[date]]:
		"""Return (present count, earliest present meeting date) for a subject."""
		...

	# charity and guest event ledgers
	async def insert_charity_event(self, event: CharityEvent) -> CharityEvent:
		...

	async def get_charity_event(self, event_id: UUID, *, for_update: bool = False) -> Optional[CharityEvent]:
		...

	async def update_charity_event(self, event_id: UUID, changes: Mapping[str, Any]) -> Optional[CharityEvent]:
		...

	async def set_charity_participants(self, event_id: UUID, participant_ids: Sequence[UUID]) -> Optional[CharityEvent]:
		...

	async def delete_charity_event(self, event_id: UUID) -> bool:
		...

	async def list_charity_events(self) -> Sequence[CharityEvent]:
		...

	async def count_charity_participation(self, participant_id: UUID) -> int:
		...

	async def insert_guest_event(self, event: GuestEvent) -> GuestEvent:
		...

	async def get_guest_event(self, event_id: UUID) -> Optional[GuestEvent]:
		...

	async def delete_guest_event(self, event_id: UUID) -> bool:
		...

	async def list_guest_events(self, guest_id: Optional[UUID] = None) -> Sequence[GuestEvent]:
		...

	async def count_guest_events(self, guest_id: UUID) -> int:
		...

	# guests
	async def insert_guest(self, guest: Guest) -> Guest:
		...

	async def get_guest(self, guest_id: UUID, *, for_update: bool = False) -> Optional[Guest]:
		...

	async def list_guests(self, *, status: Optional[str] = None) -> Sequence[Guest]:
		...

	async def update_guest_contact(self, guest_id: UUID, changes: Mapping[str, Any]) -> Optional[Guest]:
		...

	async def write_guest_counters(
		self, guest_id: UUID, *, total_meetings: int, first_attendance: Optional[date]
	) -> Optional[Guest]:
		...

	async def set_guest_status(
		self, guest_id: UUID, status: GuestStatus, *, total_meetings: Optional[int] = None
	) -> Optional[Guest]:
		...

	async def delete_guest(self, guest_id: UUID) -> bool:
		...

	# pipeliners
	async def insert_pipeliner(self, pipeliner: Pipeliner) -> Pipeliner:
		...

	async def get_pipeliner(self, pipeliner_id: UUID, *, for_update: bool = False) -> Optional[Pipeliner]:
		...

	async def list_pipeliners(self, *, status: Optional[str] = None) -> Sequence[Pipeliner]:
		...

	async def update_pipeliner_contact(self, pipeliner_id: UUID, changes: Mapping[str, Any]) -> Optional[Pipeliner]:
		...

	async def write_pipeliner_counters(
		self,
		pipeliner_id: UUID,
		*,
		business_meetings_count: int,
		charity_events_count: int,
		is_eligible_for_membership: bool,
	) -> Optional[Pipeliner]:
		...

	async def set_pipeliner_status(
		self, pipeliner_id: UUID, status: PipelinerStatus, *, is_eligible_for_membership: bool
	) -> Optional[Pipeliner]:
		...

	async def delete_pipeliner(self, pipeliner_id: UUID) -> bool:
		...

	# members
	async def insert_member(self, member: Member) -> Member:
		...

	async def get_member(self, member_id: UUID, *, for_update: bool = False) -> Optional[Member]:
		...

	async def list_members(self, *, status: Optional[str] = None) -> Sequence[Member]:
		...

	async def update_member(self, member_id: UUID, changes: Mapping[str, Any]) -> Optional[Member]:
		...

	async def delete_member(self, member_id: UUID) -> bool:
		...

	# organisation settings
	async def get_app_settings(self, keys: Iterable[str]) -> Mapping[str, AppSetting]:
		...

	async def upsert_app_settings(self, entries: Sequence[AppSetting]) -> None:
		...

	async def count_rows(self) -> Mapping[str, int]:
		"""Row count per table in ``DATA_TABLES``."""
		...


class MembershipRepository(Protocol):
	def transaction(self) -> AsyncContextManager[MembershipSession]:
		...
