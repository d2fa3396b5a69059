"""Attendance, charity and guest-event ledger mutations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence
from uuid import UUID, uuid4

from roundtable.domain.membership import eligibility
from roundtable.domain.membership.aggregates import AggregateMaintainer, pipeliner_flag
from roundtable.domain.membership.exceptions import (
	InvalidParticipant,
	InvalidSubject,
	NotFoundError,
	ValidationError,
)
from roundtable.domain.membership.models import (
	AttendanceRecord,
	AttendanceStatus,
	CharityEvent,
	GuestEvent,
	Meeting,
	MeetingType,
	Subject,
	SubjectKind,
	unique_ids,
)
from roundtable.domain.membership.org_settings import load_org_settings
from roundtable.domain.membership.repository import (
	ATTENDANCE_FIELDS,
	CHARITY_EVENT_FIELDS,
	MEETING_FIELDS,
	MembershipRepository,
	MembershipSession,
)
from roundtable.obs import metrics

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class GuestEligibility:
	guest_id: UUID
	present_count: int
	charity_count: int
	eligible: bool
	missing: List[str]


@dataclass(slots=True, frozen=True)
class PipelinerEligibility:
	pipeliner_id: UUID
	business_count: int
	charity_count: int
	eligible: bool
	missing: List[str]
	progress: eligibility.EligibilityProgress


def parse_meeting_type(value: Any) -> MeetingType:
	try:
		return MeetingType(value)
	except ValueError:
		raise ValidationError(f"Unknown meeting type '{value}'.", code="invalid_meeting_type") from None


def parse_attendance_status(value: Any) -> AttendanceStatus:
	try:
		return AttendanceStatus(value)
	except ValueError:
		raise ValidationError(f"Unknown attendance status '{value}'.", code="invalid_status") from None


def parse_subject(kind: Any, subject_id: Optional[UUID]) -> Subject:
	try:
		subject_kind = SubjectKind(kind)
	except ValueError:
		raise ValidationError(f"Unknown subject kind '{kind}'.", code="invalid_subject_kind") from None
	if subject_id is None:
		raise ValidationError("Subject id is required.", code="subject_required")
	return Subject(subject_kind, subject_id)


def restrict_changes(changes: Mapping[str, Any], allowed: frozenset) -> Dict[str, Any]:
	unknown = set(changes) - allowed
	if unknown:
		raise ValidationError(
			f"Fields cannot be updated here: {', '.join(sorted(unknown))}.", code="field_not_editable"
		)
	return dict(changes)


async def require_meeting(session: MembershipSession, meeting_id: UUID) -> Meeting:
	meeting = await session.get_meeting(meeting_id)
	if meeting is None:
		raise NotFoundError("Meeting not found.", code="meeting_not_found")
	return meeting


async def require_subject(session: MembershipSession, subject: Subject) -> None:
	if subject.kind == SubjectKind.GUEST:
		found = await session.get_guest(subject.id)
	elif subject.kind == SubjectKind.PIPELINER:
		found = await session.get_pipeliner(subject.id)
	else:
		found = await session.get_member(subject.id)
	if found is None:
		raise InvalidSubject(f"No {subject.kind.value} with id {subject.id}.")


class LedgerService:
	"""Applies ledger mutations and recomputes affected counters in the same transaction."""

	def __init__(self, repository: MembershipRepository, maintainer: AggregateMaintainer | None = None) -> None:
		self._repo = repository
		self._maintainer = maintainer or AggregateMaintainer()

	# meetings

	async def create_meeting(
		self,
		*,
		meeting_date: date,
		meeting_type: str = MeetingType.BUSINESS.value,
		location: Optional[str] = None,
		notes: Optional[str] = None,
	) -> Meeting:
		parsed_type = parse_meeting_type(meeting_type)
		async with self._repo.transaction() as session:
			if location is None:
				location = (await load_org_settings(session)).default_meeting_location
			created = await session.insert_meeting(
				Meeting(
					id=uuid4(),
					meeting_date=meeting_date,
					meeting_type=parsed_type,
					location=location,
					notes=notes,
				)
			)
		metrics.inc_ledger_write("meetings", "create")
		return created

	async def get_meeting(self, meeting_id: UUID) -> Meeting:
		async with self._repo.transaction() as session:
			return await require_meeting(session, meeting_id)

	async def list_meetings(
		self,
		*,
		start: Optional[date] = None,
		end: Optional[date] = None,
		meeting_type: Optional[str] = None,
	) -> Sequence[Meeting]:
		if meeting_type is not None:
			meeting_type = parse_meeting_type(meeting_type).value
		async with self._repo.transaction() as session:
			return await session.list_meetings(start=start, end=end, meeting_type=meeting_type)

	async def update_meeting(self, meeting_id: UUID, changes: Mapping[str, Any]) -> Meeting:
		payload = restrict_changes(changes, MEETING_FIELDS)
		if "meeting_type" in payload:
			payload["meeting_type"] = parse_meeting_type(payload["meeting_type"])
		if "meeting_date" in payload and payload["meeting_date"] is None:
			raise ValidationError("Meeting date is required.", code="meeting_date_required")
		async with self._repo.transaction() as session:
			await require_meeting(session, meeting_id)
			updated = await session.update_meeting(meeting_id, payload)
			if updated is None:
				raise NotFoundError("Meeting not found.", code="meeting_not_found")
			if "meeting_date" in payload:
				# first_attendance depends on meeting dates
				records = await session.list_attendance(meeting_ids=[meeting_id])
				await self._maintainer.recompute_subjects(session, [record.subject for record in records])
		metrics.inc_ledger_write("meetings", "update")
		return updated

	async def delete_meeting(self, meeting_id: UUID) -> None:
		async with self._repo.transaction() as session:
			await require_meeting(session, meeting_id)
			records = await session.list_attendance(meeting_ids=[meeting_id])
			await session.delete_meeting(meeting_id)
			await self._maintainer.recompute_subjects(session, [record.subject for record in records])
		metrics.inc_ledger_write("meetings", "delete")
		LOGGER.info(
			"meeting_deleted",
			extra={"meeting_id": str(meeting_id), "attendance_removed": len(records)},
		)

	# attendance ledger

	async def record_attendance(
		self,
		meeting_id: UUID,
		subject_kind: str,
		subject_id: UUID,
		status: str,
		notes: Optional[str] = None,
	) -> AttendanceRecord:
		subject = parse_subject(subject_kind, subject_id)
		record = AttendanceRecord(
			id=uuid4(),
			meeting_id=meeting_id,
			subject=subject,
			status=parse_attendance_status(status),
			notes=notes,
		)
		async with self._repo.transaction() as session:
			await require_meeting(session, meeting_id)
			await require_subject(session, subject)
			created = await session.insert_attendance(record)
			await self._maintainer.recompute_subject(session, subject)
		metrics.inc_ledger_write("attendance", "create")
		return created

	async def list_attendance(
		self,
		*,
		meeting_id: Optional[UUID] = None,
		subject: Optional[Subject] = None,
	) -> Sequence[AttendanceRecord]:
		async with self._repo.transaction() as session:
			if meeting_id is not None:
				await require_meeting(session, meeting_id)
			return await session.list_attendance(
				meeting_ids=[meeting_id] if meeting_id is not None else None,
				subject=subject,
			)

	async def update_attendance(self, record_id: UUID, changes: Mapping[str, Any]) -> AttendanceRecord:
		payload = restrict_changes(changes, ATTENDANCE_FIELDS)
		if "status" in payload:
			payload["status"] = parse_attendance_status(payload["status"])
		async with self._repo.transaction() as session:
			existing = await session.get_attendance(record_id)
			if existing is None:
				raise NotFoundError("Attendance record not found.", code="attendance_not_found")
			if "subject" in payload:
				await require_subject(session, payload["subject"])
			updated = await session.update_attendance(record_id, payload)
			if updated is None:
				raise NotFoundError("Attendance record not found.", code="attendance_not_found")
			await self._maintainer.recompute_subjects(session, {existing.subject, updated.subject})
		metrics.inc_ledger_write("attendance", "update")
		return updated

	async def delete_attendance(self, record_id: UUID) -> None:
		async with self._repo.transaction() as session:
			existing = await session.get_attendance(record_id)
			if existing is None:
				raise NotFoundError("Attendance record not found.", code="attendance_not_found")
			await session.delete_attendance(record_id)
			await self._maintainer.recompute_subject(session, existing.subject)
		metrics.inc_ledger_write("attendance", "delete")

	# charity ledger

	async def _validate_participants(self, session: MembershipSession, participant_ids: Sequence[UUID]) -> None:
		invalid = []
		for participant_id in participant_ids:
			if await session.get_member(participant_id) is not None:
				continue
			if await session.get_pipeliner(participant_id) is not None:
				continue
			invalid.append(participant_id)
		if invalid:
			raise InvalidParticipant(invalid)

	async def create_charity_event(
		self,
		*,
		event_name: str,
		event_date: date,
		description: Optional[str] = None,
		participant_ids: Sequence[UUID] = (),
	) -> CharityEvent:
		if not (event_name or "").strip():
			raise ValidationError("Event name is required.", code="event_name_required")
		participants = unique_ids(participant_ids)
		event = CharityEvent(
			id=uuid4(),
			event_name=event_name.strip(),
			event_date=event_date,
			description=description,
			participant_ids=participants,
		)
		async with self._repo.transaction() as session:
			await self._validate_participants(session, participants)
			created = await session.insert_charity_event(event)
			await self._maintainer.recompute_participants(session, participants)
		metrics.inc_ledger_write("charity", "create")
		return created

	async def get_charity_event(self, event_id: UUID) -> CharityEvent:
		async with self._repo.transaction() as session:
			event = await session.get_charity_event(event_id)
		if event is None:
			raise NotFoundError("Charity event not found.", code="charity_event_not_found")
		return event

	async def list_charity_events(self) -> Sequence[CharityEvent]:
		async with self._repo.transaction() as session:
			return await session.list_charity_events()

	async def update_charity_event(self, event_id: UUID, changes: Mapping[str, Any]) -> CharityEvent:
		payload = dict(changes)
		participant_ids = payload.pop("participant_ids", None)
		payload = restrict_changes(payload, CHARITY_EVENT_FIELDS)
		if "event_name" in payload and not (payload["event_name"] or "").strip():
			raise ValidationError("Event name is required.", code="event_name_required")
		if "event_date" in payload and payload["event_date"] is None:
			raise ValidationError("Event date is required.", code="event_date_required")
		async with self._repo.transaction() as session:
			existing = await session.get_charity_event(event_id, for_update=True)
			if existing is None:
				raise NotFoundError("Charity event not found.", code="charity_event_not_found")
			updated = existing
			if payload:
				updated = await session.update_charity_event(event_id, payload)
			if participant_ids is not None:
				updated = await self._replace_participants(session, existing, participant_ids)
		metrics.inc_ledger_write("charity", "update")
		return updated

	async def record_charity_participation(self, event_id: UUID, participant_ids: Sequence[UUID]) -> CharityEvent:
		"""Replace the participant set of an event and refresh affected pipeliners."""
		async with self._repo.transaction() as session:
			existing = await session.get_charity_event(event_id, for_update=True)
			if existing is None:
				raise NotFoundError("Charity event not found.", code="charity_event_not_found")
			updated = await self._replace_participants(session, existing, participant_ids)
		metrics.inc_ledger_write("charity", "participants")
		return updated

	async def _replace_participants(
		self, session: MembershipSession, existing: CharityEvent, participant_ids: Sequence[UUID]
	) -> CharityEvent:
		participants = unique_ids(participant_ids)
		# ids already on the event may belong to rows deleted since; only new ids are checked
		kept = set(existing.participant_ids)
		await self._validate_participants(
			session, [participant_id for participant_id in participants if participant_id not in kept]
		)
		updated = await session.set_charity_participants(existing.id, participants)
		if updated is None:
			raise NotFoundError("Charity event not found.", code="charity_event_not_found")
		await self._maintainer.recompute_participants(
			session, set(existing.participant_ids) | set(participants)
		)
		return updated

	async def delete_charity_event(self, event_id: UUID) -> None:
		async with self._repo.transaction() as session:
			existing = await session.get_charity_event(event_id, for_update=True)
			if existing is None:
				raise NotFoundError("Charity event not found.", code="charity_event_not_found")
			await session.delete_charity_event(event_id)
			await self._maintainer.recompute_participants(session, existing.participant_ids)
		metrics.inc_ledger_write("charity", "delete")

	# guest event ledger

	async def record_guest_event(
		self,
		guest_id: UUID,
		*,
		event_name: str,
		event_date: date,
		contribution: Optional[str] = None,
	) -> GuestEvent:
		if not (event_name or "").strip():
			raise ValidationError("Event name is required.", code="event_name_required")
		event = GuestEvent(
			id=uuid4(),
			guest_id=guest_id,
			event_name=event_name.strip(),
			event_date=event_date,
			contribution=contribution,
		)
		async with self._repo.transaction() as session:
			if await session.get_guest(guest_id, for_update=True) is None:
				raise NotFoundError("Guest not found.", code="guest_not_found")
			created = await session.insert_guest_event(event)
		metrics.inc_ledger_write("guest_events", "create")
		return created

	async def list_guest_events(self, guest_id: UUID) -> Sequence[GuestEvent]:
		async with self._repo.transaction() as session:
			if await session.get_guest(guest_id) is None:
				raise NotFoundError("Guest not found.", code="guest_not_found")
			return await session.list_guest_events(guest_id)

	async def delete_guest_event(self, event_id: UUID, *, guest_id: Optional[UUID] = None) -> None:
		async with self._repo.transaction() as session:
			event = await session.get_guest_event(event_id)
			if event is None or (guest_id is not None and event.guest_id != guest_id):
				raise NotFoundError("Guest event not found.", code="guest_event_not_found")
			await session.delete_guest_event(event_id)
		metrics.inc_ledger_write("guest_events", "delete")

	# eligibility reads

	async def get_guest_eligibility(self, guest_id: UUID) -> GuestEligibility:
		async with self._repo.transaction() as session:
			if await session.get_guest(guest_id) is None:
				raise NotFoundError("Guest not found.", code="guest_not_found")
			present, _ = await session.present_stats(Subject.guest(guest_id))
			charity = await session.count_guest_events(guest_id)
		return GuestEligibility(
			guest_id=guest_id,
			present_count=present,
			charity_count=charity,
			eligible=eligibility.guest_eligible_for_pipeliner(present, charity),
			missing=eligibility.missing_requirements(present, charity, "meeting"),
		)

	async def get_pipeliner_eligibility(self, pipeliner_id: UUID) -> PipelinerEligibility:
		async with self._repo.transaction() as session:
			pipeliner = await session.get_pipeliner(pipeliner_id)
			if pipeliner is None:
				raise NotFoundError("Pipeliner not found.", code="pipeliner_not_found")
			business, _ = await session.present_stats(Subject.pipeliner(pipeliner_id))
			charity = await session.count_charity_participation(pipeliner_id)
		return PipelinerEligibility(
			pipeliner_id=pipeliner_id,
			business_count=business,
			charity_count=charity,
			eligible=pipeliner_flag(pipeliner.status, business, charity),
			missing=eligibility.missing_requirements(business, charity, "business meeting"),
			progress=eligibility.progress(business, charity),
		)

	async def recompute_all(self):
		async with self._repo.transaction() as session:
			return await self._maintainer.recompute_all(session)
