"""In-process membership store used for local runs and tests.

Transactions run one at a time behind a store-wide lock. Each transaction
works on a snapshot of the tables; any exception restores the snapshot, and
savepoints do the same for their own block. Unique indexes, the cascades and
the set-null behaviour of the SQL schema are reproduced here.
"""

from __future__ import annotations

import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, AsyncIterator, Dict, Iterable, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from roundtable.domain.membership import exceptions
from roundtable.domain.membership.models import (
	AppSetting,
	AttendanceRecord,
	AttendanceStatus,
	CharityEvent,
	Guest,
	GuestEvent,
	GuestStatus,
	Meeting,
	Member,
	Pipeliner,
	PipelinerStatus,
	Subject,
	SubjectKind,
	unique_ids,
	utcnow,
)
from roundtable.domain.membership.repository import DATA_TABLES


@dataclass
class _Tables:
	meetings: Dict[UUID, Meeting] = field(default_factory=dict)
	attendance: Dict[UUID, AttendanceRecord] = field(default_factory=dict)
	guests: Dict[UUID, Guest] = field(default_factory=dict)
	pipeliners: Dict[UUID, Pipeliner] = field(default_factory=dict)
	members: Dict[UUID, Member] = field(default_factory=dict)
	charity_events: Dict[UUID, CharityEvent] = field(default_factory=dict)
	guest_events: Dict[UUID, GuestEvent] = field(default_factory=dict)
	app_settings: Dict[str, AppSetting] = field(default_factory=dict)


def _normalise_email(value: Optional[str]) -> Optional[str]:
	return value.strip().lower() if value else None


class InMemoryMembershipSession:
	def __init__(self, tables: _Tables) -> None:
		self._tables = tables

	@asynccontextmanager
	async def savepoint(self) -> AsyncIterator[None]:
		snapshot = copy.deepcopy(self._tables)
		try:
			yield
		except BaseException:
			self._restore(snapshot)
			raise

	def _restore(self, snapshot: _Tables) -> None:
		for name in vars(snapshot):
			setattr(self._tables, name, getattr(snapshot, name))

	# meetings

	async def insert_meeting(self, meeting: Meeting) -> Meeting:
		self._tables.meetings[meeting.id] = meeting
		return copy.copy(meeting)

	async def get_meeting(self, meeting_id: UUID) -> Optional[Meeting]:
		meeting = self._tables.meetings.get(meeting_id)
		return copy.copy(meeting) if meeting else None

	async def update_meeting(self, meeting_id: UUID, changes: Mapping[str, Any]) -> Optional[Meeting]:
		meeting = self._tables.meetings.get(meeting_id)
		if meeting is None:
			return None
		updated = replace(meeting, **dict(changes), updated_at=utcnow())
		self._tables.meetings[meeting_id] = updated
		return copy.copy(updated)

	async def delete_meeting(self, meeting_id: UUID) -> bool:
		if self._tables.meetings.pop(meeting_id, None) is None:
			return False
		self._drop_attendance(lambda record: record.meeting_id == meeting_id)
		return True

	async def list_meetings(
		self,
		*,
		start: Optional[date] = None,
		end: Optional[date] = None,
		meeting_type: Optional[str] = None,
	) -> Sequence[Meeting]:
		rows = [
			copy.copy(meeting)
			for meeting in self._tables.meetings.values()
			if (start is None or meeting.meeting_date >= start)
			and (end is None or meeting.meeting_date <= end)
			and (meeting_type is None or meeting.meeting_type.value == meeting_type)
		]
		rows.sort(key=lambda meeting: (meeting.meeting_date, meeting.created_at))
		return rows

	# attendance ledger

	def _drop_attendance(self, predicate) -> None:
		for record_id in [key for key, record in self._tables.attendance.items() if predicate(record)]:
			del self._tables.attendance[record_id]

	def _check_attendance_unique(self, record: AttendanceRecord) -> None:
		for existing in self._tables.attendance.values():
			if existing.id == record.id:
				continue
			if existing.meeting_id == record.meeting_id and existing.subject == record.subject:
				raise exceptions.DuplicateAttendance()

	def _check_attendance_refs(self, record: AttendanceRecord) -> None:
		if record.meeting_id not in self._tables.meetings:
			raise exceptions.NotFoundError("Meeting not found.", code="meeting_not_found")
		if not self._subject_exists(record.subject):
			raise exceptions.InvalidSubject()

	def _subject_exists(self, subject: Subject) -> bool:
		table = {
			SubjectKind.MEMBER: self._tables.members,
			SubjectKind.GUEST: self._tables.guests,
			SubjectKind.PIPELINER: self._tables.pipeliners,
		}[subject.kind]
		return subject.id in table

	async def insert_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
		self._check_attendance_refs(record)
		self._check_attendance_unique(record)
		self._tables.attendance[record.id] = record
		return copy.copy(record)

	async def get_attendance(self, record_id: UUID) -> Optional[AttendanceRecord]:
		record = self._tables.attendance.get(record_id)
		return copy.copy(record) if record else None

	async def update_attendance(self, record_id: UUID, changes: Mapping[str, Any]) -> Optional[AttendanceRecord]:
		record = self._tables.attendance.get(record_id)
		if record is None:
			return None
		updated = replace(record, **dict(changes))
		self._check_attendance_refs(updated)
		self._check_attendance_unique(updated)
		self._tables.attendance[record_id] = updated
		return copy.copy(updated)

	async def delete_attendance(self, record_id: UUID) -> bool:
		return self._tables.attendance.pop(record_id, None) is not None

	async def list_attendance(
		self,
		*,
		meeting_ids: Optional[Iterable[UUID]] = None,
		subject: Optional[Subject] = None,
	) -> Sequence[AttendanceRecord]:
		wanted = set(meeting_ids) if meeting_ids is not None else None
		rows = [
			copy.copy(record)
			for record in self._tables.attendance.values()
			if (wanted is None or record.meeting_id in wanted)
			and (subject is None or record.subject == subject)
		]
		rows.sort(key=lambda record: record.created_at)
		return rows

	async def present_stats(self, subject: Subject) -> Tuple[int, Optional[date]]:
		dates = [
			self._tables.meetings[record.meeting_id].meeting_date
			for record in self._tables.attendance.values()
			if record.subject == subject and record.status == AttendanceStatus.PRESENT
		]
		return len(dates), (min(dates) if dates else None)

	# charity and guest event ledgers

	async def insert_charity_event(self, event: CharityEvent) -> CharityEvent:
		stored = replace(event, participant_ids=unique_ids(event.participant_ids))
		self._tables.charity_events[stored.id] = stored
		return copy.copy(stored)

	async def get_charity_event(self, event_id: UUID, *, for_update: bool = False) -> Optional[CharityEvent]:
		event = self._tables.charity_events.get(event_id)
		return copy.copy(event) if event else None

	async def update_charity_event(self, event_id: UUID, changes: Mapping[str, Any]) -> Optional[CharityEvent]:
		event = self._tables.charity_events.get(event_id)
		if event is None:
			return None
		updated = replace(event, **dict(changes), updated_at=utcnow())
		self._tables.charity_events[event_id] = updated
		return copy.copy(updated)

	async def set_charity_participants(self, event_id: UUID, participant_ids: Sequence[UUID]) -> Optional[CharityEvent]:
		return await self.update_charity_event(event_id, {"participant_ids": unique_ids(participant_ids)})

	async def delete_charity_event(self, event_id: UUID) -> bool:
		return self._tables.charity_events.pop(event_id, None) is not None

	async def list_charity_events(self) -> Sequence[CharityEvent]:
		rows = [copy.copy(event) for event in self._tables.charity_events.values()]
		rows.sort(key=lambda event: (event.event_date, event.created_at), reverse=True)
		return rows

	async def count_charity_participation(self, participant_id: UUID) -> int:
		return sum(1 for event in self._tables.charity_events.values() if participant_id in event.participant_ids)

	async def insert_guest_event(self, event: GuestEvent) -> GuestEvent:
		if event.guest_id not in self._tables.guests:
			raise exceptions.NotFoundError("Guest not found.", code="guest_not_found")
		self._tables.guest_events[event.id] = event
		return copy.copy(event)

	async def get_guest_event(self, event_id: UUID) -> Optional[GuestEvent]:
		event = self._tables.guest_events.get(event_id)
		return copy.copy(event) if event else None

	async def delete_guest_event(self, event_id: UUID) -> bool:
		return self._tables.guest_events.pop(event_id, None) is not None

	async def list_guest_events(self, guest_id: Optional[UUID] = None) -> Sequence[GuestEvent]:
		rows = [
			copy.copy(event)
			for event in self._tables.guest_events.values()
			if guest_id is None or event.guest_id == guest_id
		]
		rows.sort(key=lambda event: (event.event_date, event.created_at), reverse=True)
		return rows

	async def count_guest_events(self, guest_id: UUID) -> int:
		return sum(1 for event in self._tables.guest_events.values() if event.guest_id == guest_id)

	# guests

	async def insert_guest(self, guest: Guest) -> Guest:
		self._tables.guests[guest.id] = guest
		return copy.copy(guest)

	async def get_guest(self, guest_id: UUID, *, for_update: bool = False) -> Optional[Guest]:
		guest = self._tables.guests.get(guest_id)
		return copy.copy(guest) if guest else None

	async def list_guests(self, *, status: Optional[str] = None) -> Sequence[Guest]:
		rows = [
			copy.copy(guest)
			for guest in self._tables.guests.values()
			if status is None or guest.status.value == status
		]
		rows.sort(key=lambda guest: guest.created_at, reverse=True)
		return rows

	def _update_guest(self, guest_id: UUID, changes: Mapping[str, Any]) -> Optional[Guest]:
		guest = self._tables.guests.get(guest_id)
		if guest is None:
			return None
		updated = replace(guest, **dict(changes), updated_at=utcnow())
		self._tables.guests[guest_id] = updated
		return copy.copy(updated)

	async def update_guest_contact(self, guest_id: UUID, changes: Mapping[str, Any]) -> Optional[Guest]:
		return self._update_guest(guest_id, changes)

	async def write_guest_counters(
		self, guest_id: UUID, *, total_meetings: int, first_attendance: Optional[date]
	) -> Optional[Guest]:
		return self._update_guest(guest_id, {"total_meetings": total_meetings, "first_attendance": first_attendance})

	async def set_guest_status(
		self, guest_id: UUID, status: GuestStatus, *, total_meetings: Optional[int] = None
	) -> Optional[Guest]:
		changes: Dict[str, Any] = {"status": status}
		if total_meetings is not None:
			changes["total_meetings"] = total_meetings
		return self._update_guest(guest_id, changes)

	async def delete_guest(self, guest_id: UUID) -> bool:
		if self._tables.guests.pop(guest_id, None) is None:
			return False
		subject = Subject.guest(guest_id)
		self._drop_attendance(lambda record: record.subject == subject)
		for event_id in [key for key, event in self._tables.guest_events.items() if event.guest_id == guest_id]:
			del self._tables.guest_events[event_id]
		for pipeliner in self._tables.pipeliners.values():
			if pipeliner.promoted_from_guest_id == guest_id:
				pipeliner.promoted_from_guest_id = None
		return True

	# pipeliners

	async def insert_pipeliner(self, pipeliner: Pipeliner) -> Pipeliner:
		self._tables.pipeliners[pipeliner.id] = pipeliner
		return copy.copy(pipeliner)

	async def get_pipeliner(self, pipeliner_id: UUID, *, for_update: bool = False) -> Optional[Pipeliner]:
		pipeliner = self._tables.pipeliners.get(pipeliner_id)
		return copy.copy(pipeliner) if pipeliner else None

	async def list_pipeliners(self, *, status: Optional[str] = None) -> Sequence[Pipeliner]:
		rows = [
			copy.copy(pipeliner)
			for pipeliner in self._tables.pipeliners.values()
			if status is None or pipeliner.status.value == status
		]
		rows.sort(key=lambda pipeliner: pipeliner.created_at, reverse=True)
		return rows

	def _update_pipeliner(self, pipeliner_id: UUID, changes: Mapping[str, Any]) -> Optional[Pipeliner]:
		pipeliner = self._tables.pipeliners.get(pipeliner_id)
		if pipeliner is None:
			return None
		updated = replace(pipeliner, **dict(changes), updated_at=utcnow())
		self._tables.pipeliners[pipeliner_id] = updated
		return copy.copy(updated)

	async def update_pipeliner_contact(self, pipeliner_id: UUID, changes: Mapping[str, Any]) -> Optional[Pipeliner]:
		return self._update_pipeliner(pipeliner_id, changes)

	async def write_pipeliner_counters(
		self,
		pipeliner_id: UUID,
		*,
		business_meetings_count: int,
		charity_events_count: int,
		is_eligible_for_membership: bool,
	) -> Optional[Pipeliner]:
		return self._update_pipeliner(
			pipeliner_id,
			{
				"business_meetings_count": business_meetings_count,
				"charity_events_count": charity_events_count,
				"is_eligible_for_membership": is_eligible_for_membership,
			},
		)

	async def set_pipeliner_status(
		self, pipeliner_id: UUID, status: PipelinerStatus, *, is_eligible_for_membership: bool
	) -> Optional[Pipeliner]:
		return self._update_pipeliner(
			pipeliner_id, {"status": status, "is_eligible_for_membership": is_eligible_for_membership}
		)

	async def delete_pipeliner(self, pipeliner_id: UUID) -> bool:
		if self._tables.pipeliners.pop(pipeliner_id, None) is None:
			return False
		subject = Subject.pipeliner(pipeliner_id)
		self._drop_attendance(lambda record: record.subject == subject)
		return True

	# members

	def _check_member_unique(self, member: Member) -> None:
		email = _normalise_email(member.email)
		for existing in self._tables.members.values():
			if existing.id == member.id:
				continue
			if member.member_number and existing.member_number == member.member_number:
				raise exceptions.DuplicateIdentifier("Member number already in use.", code="member_number_exists")
			if email and _normalise_email(existing.email) == email:
				raise exceptions.DuplicateIdentifier("Email address already in use.", code="email_exists")

	async def insert_member(self, member: Member) -> Member:
		self._check_member_unique(member)
		self._tables.members[member.id] = member
		return copy.copy(member)

	async def get_member(self, member_id: UUID, *, for_update: bool = False) -> Optional[Member]:
		member = self._tables.members.get(member_id)
		return copy.copy(member) if member else None

	async def list_members(self, *, status: Optional[str] = None) -> Sequence[Member]:
		rows = [
			copy.copy(member)
			for member in self._tables.members.values()
			if status is None or member.status.value == status
		]
		rows.sort(key=lambda member: member.full_name.lower())
		return rows

	async def update_member(self, member_id: UUID, changes: Mapping[str, Any]) -> Optional[Member]:
		member = self._tables.members.get(member_id)
		if member is None:
			return None
		updated = replace(member, **dict(changes), updated_at=utcnow())
		self._check_member_unique(updated)
		self._tables.members[member_id] = updated
		return copy.copy(updated)

	async def delete_member(self, member_id: UUID) -> bool:
		if self._tables.members.pop(member_id, None) is None:
			return False
		subject = Subject.member(member_id)
		self._drop_attendance(lambda record: record.subject == subject)
		for guest in self._tables.guests.values():
			if guest.invited_by == member_id:
				guest.invited_by = None
		for pipeliner in self._tables.pipeliners.values():
			if pipeliner.sponsored_by == member_id:
				pipeliner.sponsored_by = None
		return True

	# organisation settings

	async def get_app_settings(self, keys: Iterable[str]) -> Mapping[str, AppSetting]:
		return {key: copy.copy(self._tables.app_settings[key]) for key in keys if key in self._tables.app_settings}

	async def upsert_app_settings(self, entries: Sequence[AppSetting]) -> None:
		for entry in entries:
			self._tables.app_settings[entry.key] = replace(entry, updated_at=utcnow())

	async def count_rows(self) -> Mapping[str, int]:
		return {table: len(getattr(self._tables, table)) for table in DATA_TABLES}


class InMemoryMembershipRepository:
	"""Serial, snapshot-isolated store implementing ``MembershipRepository``."""

	def __init__(self) -> None:
		self._tables = _Tables()
		self._lock = asyncio.Lock()

	@asynccontextmanager
	async def transaction(self) -> AsyncIterator[InMemoryMembershipSession]:
		async with self._lock:
			snapshot = copy.deepcopy(self._tables)
			session = InMemoryMembershipSession(self._tables)
			try:
				yield session
			except BaseException:
				session._restore(snapshot)
				raise

	def reset(self) -> None:
		self._tables = _Tables()
