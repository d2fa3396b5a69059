"""PostgreSQL-backed membership repository using asyncpg."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date
from enum import Enum
from typing import Any, AsyncIterator, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

import asyncpg

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
	MeetingType,
	Member,
	MemberStatus,
	Pipeliner,
	PipelinerStatus,
	Subject,
	SubjectKind,
	month_name,
	unique_ids,
)
from roundtable.domain.membership.repository import DATA_TABLES
from roundtable.infra.postgres import get_pool
from roundtable.obs import metrics

LOGGER = logging.getLogger(__name__)

_SUBJECT_COLUMNS = {
	SubjectKind.MEMBER: "member_id",
	SubjectKind.GUEST: "guest_id",
	SubjectKind.PIPELINER: "pipeliner_id",
}

_TRANSIENT_ERRORS: Tuple[type, ...] = (
	asyncpg.exceptions.SerializationError,
	asyncpg.exceptions.DeadlockDetectedError,
	asyncpg.exceptions.ConnectionDoesNotExistError,
	asyncpg.exceptions.CannotConnectNowError,
	asyncpg.exceptions.TooManyConnectionsError,
	asyncio.TimeoutError,
	ConnectionError,
)

_UNIQUE_CONSTRAINTS = {
	"members_member_number_key": lambda: exceptions.DuplicateIdentifier(
		"Member number already in use.", code="member_number_exists"
	),
	"members_email_lower_key": lambda: exceptions.DuplicateIdentifier(
		"Email address already in use.", code="email_exists"
	),
	"attendance_meeting_member_key": exceptions.DuplicateAttendance,
	"attendance_meeting_guest_key": exceptions.DuplicateAttendance,
	"attendance_meeting_pipeliner_key": exceptions.DuplicateAttendance,
}

_MEETING_COLUMNS = "id, meeting_date, meeting_month, meeting_year, meeting_type, location, notes, created_at, updated_at"
_ATTENDANCE_COLUMNS = "id, meeting_id, member_id, guest_id, pipeliner_id, status, notes, created_at"
_GUEST_COLUMNS = (
	"id, full_name, email, phone, status, invited_by, total_meetings, first_attendance, notes, created_at, updated_at"
)
_PIPELINER_COLUMNS = (
	"id, full_name, email, phone, promoted_from_guest_date, promoted_from_guest_id, status, sponsored_by, "
	"guest_meetings_count, business_meetings_count, charity_events_count, is_eligible_for_membership, "
	"notes, created_at, updated_at"
)
_MEMBER_COLUMNS = "id, full_name, email, phone, member_number, join_date, status, created_at, updated_at"
_CHARITY_COLUMNS = "id, event_name, event_date, description, participant_ids, created_at, updated_at"
_GUEST_EVENT_COLUMNS = "id, guest_id, event_name, event_date, contribution, created_at"
_APP_SETTING_COLUMNS = "key, value, text_value, updated_at"


def _map_unique_violation(exc: asyncpg.UniqueViolationError) -> exceptions.MembershipError:
	factory = _UNIQUE_CONSTRAINTS.get(getattr(exc, "constraint_name", None) or "")
	if factory is None:
		return exceptions.ConflictError("Duplicate value.", code="duplicate_value")
	return factory()


def _db_value(value: Any) -> Any:
	return value.value if isinstance(value, Enum) else value


def _set_clause(changes: Mapping[str, Any], start: int = 2) -> Tuple[str, List[Any]]:
	fields: List[str] = []
	values: List[Any] = []
	for name, value in changes.items():
		fields.append("%s=$%d" % (name, len(values) + start))
		values.append(_db_value(value))
	fields.append("updated_at=NOW()")
	return ", ".join(fields), values


class PostgresMembershipSession:
	"""Operations bound to one connection inside an open transaction."""

	def __init__(self, conn: asyncpg.Connection) -> None:
		self._conn = conn

	@asynccontextmanager
	async def savepoint(self) -> AsyncIterator[None]:
		async with self._conn.transaction():
			yield

	async def _fetchrow(self, query: str, *args: Any) -> Optional[asyncpg.Record]:
		try:
			return await self._conn.fetchrow(query, *args)
		except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
			raise _map_unique_violation(exc) from exc

	# meetings

	async def insert_meeting(self, meeting: Meeting) -> Meeting:
		record = await self._fetchrow(
			f"""
			INSERT INTO meetings (id, meeting_date, meeting_month, meeting_year, meeting_type, location, notes)
			VALUES ($1, $2, $3, $4, $5, $6, $7)
			RETURNING {_MEETING_COLUMNS}
			""",
			meeting.id,
			meeting.meeting_date,
			meeting.meeting_month,
			meeting.meeting_year,
			meeting.meeting_type.value,
			meeting.location,
			meeting.notes,
		)
		return _meeting_from_record(record)

	async def get_meeting(self, meeting_id: UUID) -> Optional[Meeting]:
		record = await self._conn.fetchrow(f"SELECT {_MEETING_COLUMNS} FROM meetings WHERE id=$1", meeting_id)
		return _meeting_from_record(record) if record else None

	async def update_meeting(self, meeting_id: UUID, changes: Mapping[str, Any]) -> Optional[Meeting]:
		payload = dict(changes)
		if payload.get("meeting_date") is not None:
			payload["meeting_month"] = month_name(payload["meeting_date"])
			payload["meeting_year"] = payload["meeting_date"].year
		clause, values = _set_clause(payload)
		record = await self._fetchrow(
			f"UPDATE meetings SET {clause} WHERE id=$1 RETURNING {_MEETING_COLUMNS}",
			meeting_id,
			*values,
		)
		return _meeting_from_record(record) if record else None

	async def delete_meeting(self, meeting_id: UUID) -> bool:
		# attendance rows go with it via ON DELETE CASCADE
		status = await self._conn.execute("DELETE FROM meetings WHERE id=$1", meeting_id)
		return status.endswith(" 1")

	async def list_meetings(
		self,
		*,
		start: Optional[date] = None,
		end: Optional[date] = None,
		meeting_type: Optional[str] = None,
	) -> Sequence[Meeting]:
		records = await self._conn.fetch(
			f"""
			SELECT {_MEETING_COLUMNS}
			FROM meetings
			WHERE ($1::date IS NULL OR meeting_date >= $1)
			  AND ($2::date IS NULL OR meeting_date <= $2)
			  AND ($3::text IS NULL OR meeting_type = $3)
			ORDER BY meeting_date ASC, created_at ASC
			""",
			start,
			end,
			meeting_type,
		)
		return [_meeting_from_record(record) for record in records]

	# attendance ledger

	async def insert_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
		column = _SUBJECT_COLUMNS[record.subject.kind]
		try:
			row = await self._fetchrow(
				f"""
				INSERT INTO attendance (id, meeting_id, {column}, status, notes)
				VALUES ($1, $2, $3, $4, $5)
				RETURNING {_ATTENDANCE_COLUMNS}
				""",
				record.id,
				record.meeting_id,
				record.subject.id,
				record.status.value,
				record.notes,
			)
		except asyncpg.ForeignKeyViolationError as exc:  # type: ignore[attr-defined]
			raise exceptions.InvalidSubject() from exc
		return _attendance_from_record(row)

	async def get_attendance(self, record_id: UUID) -> Optional[AttendanceRecord]:
		row = await self._conn.fetchrow(f"SELECT {_ATTENDANCE_COLUMNS} FROM attendance WHERE id=$1", record_id)
		return _attendance_from_record(row) if row else None

	async def update_attendance(self, record_id: UUID, changes: Mapping[str, Any]) -> Optional[AttendanceRecord]:
		payload = dict(changes)
		fields: List[str] = []
		values: List[Any] = []
		subject: Optional[Subject] = payload.pop("subject", None)
		if subject is not None:
			for kind, column in _SUBJECT_COLUMNS.items():
				fields.append("%s=$%d" % (column, len(values) + 2))
				values.append(subject.id if kind == subject.kind else None)
		for name, value in payload.items():
			fields.append("%s=$%d" % (name, len(values) + 2))
			values.append(_db_value(value))
		if not fields:
			return await self.get_attendance(record_id)
		try:
			row = await self._fetchrow(
				f"UPDATE attendance SET {', '.join(fields)} WHERE id=$1 RETURNING {_ATTENDANCE_COLUMNS}",
				record_id,
				*values,
			)
		except asyncpg.ForeignKeyViolationError as exc:  # type: ignore[attr-defined]
			raise exceptions.InvalidSubject() from exc
		return _attendance_from_record(row) if row else None

	async def delete_attendance(self, record_id: UUID) -> bool:
		status = await self._conn.execute("DELETE FROM attendance WHERE id=$1", record_id)
		return status.endswith(" 1")

	async def list_attendance(
		self,
		*,
		meeting_ids: Optional[Iterable[UUID]] = None,
		subject: Optional[Subject] = None,
	) -> Sequence[AttendanceRecord]:
		clauses: List[str] = []
		values: List[Any] = []
		if meeting_ids is not None:
			values.append(list(meeting_ids))
			clauses.append("meeting_id = ANY($%d::uuid[])" % len(values))
		if subject is not None:
			values.append(subject.id)
			clauses.append("%s = $%d" % (_SUBJECT_COLUMNS[subject.kind], len(values)))
		where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
		rows = await self._conn.fetch(
			f"SELECT {_ATTENDANCE_COLUMNS} FROM attendance {where} ORDER BY created_at ASC",
			*values,
		)
		return [_attendance_from_record(row) for row in rows]

	async def present_stats(self, subject: Subject) -> Tuple[int, Optional[date]]:
		column = _SUBJECT_COLUMNS[subject.kind]
		row = await self._conn.fetchrow(
			f"""
			SELECT COUNT(*) AS present_count, MIN(m.meeting_date) AS first_date
			FROM attendance a
			JOIN meetings m ON m.id = a.meeting_id
			WHERE a.{column} = $1 AND a.status = 'present'
			""",
			subject.id,
		)
		if row is None:
			return 0, None
		return int(row["present_count"] or 0), row["first_date"]

	# charity and guest event ledgers

	async def insert_charity_event(self, event: CharityEvent) -> CharityEvent:
		record = await self._fetchrow(
			f"""
			INSERT INTO charity_events (id, event_name, event_date, description, participant_ids)
			VALUES ($1, $2, $3, $4, $5::uuid[])
			RETURNING {_CHARITY_COLUMNS}
			""",
			event.id,
			event.event_name,
			event.event_date,
			event.description,
			list(unique_ids(event.participant_ids)),
		)
		return _charity_from_record(record)

	async def get_charity_event(self, event_id: UUID, *, for_update: bool = False) -> Optional[CharityEvent]:
		lock = " FOR UPDATE" if for_update else ""
		record = await self._conn.fetchrow(f"SELECT {_CHARITY_COLUMNS} FROM charity_events WHERE id=$1{lock}", event_id)
		return _charity_from_record(record) if record else None

	async def update_charity_event(self, event_id: UUID, changes: Mapping[str, Any]) -> Optional[CharityEvent]:
		clause, values = _set_clause(changes)
		record = await self._fetchrow(
			f"UPDATE charity_events SET {clause} WHERE id=$1 RETURNING {_CHARITY_COLUMNS}",
			event_id,
			*values,
		)
		return _charity_from_record(record) if record else None

	async def set_charity_participants(self, event_id: UUID, participant_ids: Sequence[UUID]) -> Optional[CharityEvent]:
		record = await self._fetchrow(
			f"""
			UPDATE charity_events SET participant_ids=$2::uuid[], updated_at=NOW()
			WHERE id=$1
			RETURNING {_CHARITY_COLUMNS}
			""",
			event_id,
			list(unique_ids(participant_ids)),
		)
		return _charity_from_record(record) if record else None

	async def delete_charity_event(self, event_id: UUID) -> bool:
		status = await self._conn.execute("DELETE FROM charity_events WHERE id=$1", event_id)
		return status.endswith(" 1")

	async def list_charity_events(self) -> Sequence[CharityEvent]:
		records = await self._conn.fetch(
			f"SELECT {_CHARITY_COLUMNS} FROM charity_events ORDER BY event_date DESC, created_at DESC"
		)
		return [_charity_from_record(record) for record in records]

	async def count_charity_participation(self, participant_id: UUID) -> int:
		value = await self._conn.fetchval(
			"SELECT COUNT(*) FROM charity_events WHERE participant_ids @> ARRAY[$1]::uuid[]",
			participant_id,
		)
		return int(value or 0)

	async def insert_guest_event(self, event: GuestEvent) -> GuestEvent:
		try:
			record = await self._fetchrow(
				f"""
				INSERT INTO guest_events (id, guest_id, event_name, event_date, contribution)
				VALUES ($1, $2, $3, $4, $5)
				RETURNING {_GUEST_EVENT_COLUMNS}
				""",
				event.id,
				event.guest_id,
				event.event_name,
				event.event_date,
				event.contribution,
			)
		except asyncpg.ForeignKeyViolationError as exc:  # type: ignore[attr-defined]
			raise exceptions.NotFoundError("Guest not found.", code="guest_not_found") from exc
		return _guest_event_from_record(record)

	async def get_guest_event(self, event_id: UUID) -> Optional[GuestEvent]:
		record = await self._conn.fetchrow(f"SELECT {_GUEST_EVENT_COLUMNS} FROM guest_events WHERE id=$1", event_id)
		return _guest_event_from_record(record) if record else None

	async def delete_guest_event(self, event_id: UUID) -> bool:
		status = await self._conn.execute("DELETE FROM guest_events WHERE id=$1", event_id)
		return status.endswith(" 1")

	async def list_guest_events(self, guest_id: Optional[UUID] = None) -> Sequence[GuestEvent]:
		records = await self._conn.fetch(
			f"""
			SELECT {_GUEST_EVENT_COLUMNS} FROM guest_events
			WHERE ($1::uuid IS NULL OR guest_id = $1)
			ORDER BY event_date DESC, created_at DESC
			""",
			guest_id,
		)
		return [_guest_event_from_record(record) for record in records]

	async def count_guest_events(self, guest_id: UUID) -> int:
		value = await self._conn.fetchval("SELECT COUNT(*) FROM guest_events WHERE guest_id=$1", guest_id)
		return int(value or 0)

	# guests

	async def insert_guest(self, guest: Guest) -> Guest:
		record = await self._fetchrow(
			f"""
			INSERT INTO guests (id, full_name, email, phone, status, invited_by, total_meetings, first_attendance, notes)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
			RETURNING {_GUEST_COLUMNS}
			""",
			guest.id,
			guest.full_name,
			guest.email,
			guest.phone,
			guest.status.value,
			guest.invited_by,
			guest.total_meetings,
			guest.first_attendance,
			guest.notes,
		)
		return _guest_from_record(record)

	async def get_guest(self, guest_id: UUID, *, for_update: bool = False) -> Optional[Guest]:
		lock = " FOR UPDATE" if for_update else ""
		record = await self._conn.fetchrow(f"SELECT {_GUEST_COLUMNS} FROM guests WHERE id=$1{lock}", guest_id)
		return _guest_from_record(record) if record else None

	async def list_guests(self, *, status: Optional[str] = None) -> Sequence[Guest]:
		records = await self._conn.fetch(
			f"SELECT {_GUEST_COLUMNS} FROM guests WHERE ($1::text IS NULL OR status = $1) ORDER BY created_at DESC",
			status,
		)
		return [_guest_from_record(record) for record in records]

	async def _update_guest(self, guest_id: UUID, changes: Mapping[str, Any]) -> Optional[Guest]:
		clause, values = _set_clause(changes)
		record = await self._fetchrow(
			f"UPDATE guests SET {clause} WHERE id=$1 RETURNING {_GUEST_COLUMNS}",
			guest_id,
			*values,
		)
		return _guest_from_record(record) if record else None

	async def update_guest_contact(self, guest_id: UUID, changes: Mapping[str, Any]) -> Optional[Guest]:
		return await self._update_guest(guest_id, changes)

	async def write_guest_counters(
		self, guest_id: UUID, *, total_meetings: int, first_attendance: Optional[date]
	) -> Optional[Guest]:
		return await self._update_guest(
			guest_id, {"total_meetings": total_meetings, "first_attendance": first_attendance}
		)

	async def set_guest_status(
		self, guest_id: UUID, status: GuestStatus, *, total_meetings: Optional[int] = None
	) -> Optional[Guest]:
		changes: dict = {"status": status.value}
		if total_meetings is not None:
			changes["total_meetings"] = total_meetings
		return await self._update_guest(guest_id, changes)

	async def delete_guest(self, guest_id: UUID) -> bool:
		status = await self._conn.execute("DELETE FROM guests WHERE id=$1", guest_id)
		return status.endswith(" 1")

	# pipeliners

	async def insert_pipeliner(self, pipeliner: Pipeliner) -> Pipeliner:
		record = await self._fetchrow(
			f"""
			INSERT INTO pipeliners (
				id, full_name, email, phone, promoted_from_guest_date, promoted_from_guest_id, status,
				sponsored_by, guest_meetings_count, business_meetings_count, charity_events_count,
				is_eligible_for_membership, notes
			)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
			RETURNING {_PIPELINER_COLUMNS}
			""",
			pipeliner.id,
			pipeliner.full_name,
			pipeliner.email,
			pipeliner.phone,
			pipeliner.promoted_from_guest_date,
			pipeliner.promoted_from_guest_id,
			pipeliner.status.value,
			pipeliner.sponsored_by,
			pipeliner.guest_meetings_count,
			pipeliner.business_meetings_count,
			pipeliner.charity_events_count,
			pipeliner.is_eligible_for_membership,
			pipeliner.notes,
		)
		return _pipeliner_from_record(record)

	async def get_pipeliner(self, pipeliner_id: UUID, *, for_update: bool = False) -> Optional[Pipeliner]:
		lock = " FOR UPDATE" if for_update else ""
		record = await self._conn.fetchrow(
			f"SELECT {_PIPELINER_COLUMNS} FROM pipeliners WHERE id=$1{lock}", pipeliner_id
		)
		return _pipeliner_from_record(record) if record else None

	async def list_pipeliners(self, *, status: Optional[str] = None) -> Sequence[Pipeliner]:
		records = await self._conn.fetch(
			f"""
			SELECT {_PIPELINER_COLUMNS} FROM pipeliners
			WHERE ($1::text IS NULL OR status = $1)
			ORDER BY created_at DESC
			""",
			status,
		)
		return [_pipeliner_from_record(record) for record in records]

	async def _update_pipeliner(self, pipeliner_id: UUID, changes: Mapping[str, Any]) -> Optional[Pipeliner]:
		clause, values = _set_clause(changes)
		record = await self._fetchrow(
			f"UPDATE pipeliners SET {clause} WHERE id=$1 RETURNING {_PIPELINER_COLUMNS}",
			pipeliner_id,
			*values,
		)
		return _pipeliner_from_record(record) if record else None

	async def update_pipeliner_contact(self, pipeliner_id: UUID, changes: Mapping[str, Any]) -> Optional[Pipeliner]:
		return await self._update_pipeliner(pipeliner_id, changes)

	async def write_pipeliner_counters(
		self,
		pipeliner_id: UUID,
		*,
		business_meetings_count: int,
		charity_events_count: int,
		is_eligible_for_membership: bool,
	) -> Optional[Pipeliner]:
		return await self._update_pipeliner(
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
		return await self._update_pipeliner(
			pipeliner_id,
			{"status": status.value, "is_eligible_for_membership": is_eligible_for_membership},
		)

	async def delete_pipeliner(self, pipeliner_id: UUID) -> bool:
		status = await self._conn.execute("DELETE FROM pipeliners WHERE id=$1", pipeliner_id)
		return status.endswith(" 1")

	# members

	async def insert_member(self, member: Member) -> Member:
		record = await self._fetchrow(
			f"""
			INSERT INTO members (id, full_name, email, phone, member_number, join_date, status)
			VALUES ($1, $2, $3, $4, $5, $6, $7)
			RETURNING {_MEMBER_COLUMNS}
			""",
			member.id,
			member.full_name,
			member.email,
			member.phone,
			member.member_number,
			member.join_date,
			member.status.value,
		)
		return _member_from_record(record)

	async def get_member(self, member_id: UUID, *, for_update: bool = False) -> Optional[Member]:
		lock = " FOR UPDATE" if for_update else ""
		record = await self._conn.fetchrow(f"SELECT {_MEMBER_COLUMNS} FROM members WHERE id=$1{lock}", member_id)
		return _member_from_record(record) if record else None

	async def list_members(self, *, status: Optional[str] = None) -> Sequence[Member]:
		records = await self._conn.fetch(
			f"SELECT {_MEMBER_COLUMNS} FROM members WHERE ($1::text IS NULL OR status = $1) ORDER BY lower(full_name)",
			status,
		)
		return [_member_from_record(record) for record in records]

	async def update_member(self, member_id: UUID, changes: Mapping[str, Any]) -> Optional[Member]:
		clause, values = _set_clause(changes)
		record = await self._fetchrow(
			f"UPDATE members SET {clause} WHERE id=$1 RETURNING {_MEMBER_COLUMNS}",
			member_id,
			*values,
		)
		return _member_from_record(record) if record else None

	async def delete_member(self, member_id: UUID) -> bool:
		status = await self._conn.execute("DELETE FROM members WHERE id=$1", member_id)
		return status.endswith(" 1")

	# organisation settings

	async def get_app_settings(self, keys: Iterable[str]) -> Mapping[str, AppSetting]:
		records = await self._conn.fetch(
			f"SELECT {_APP_SETTING_COLUMNS} FROM app_settings WHERE key = ANY($1::text[])",
			list(keys),
		)
		return {record["key"]: _app_setting_from_record(record) for record in records}

	async def upsert_app_settings(self, entries: Sequence[AppSetting]) -> None:
		await self._conn.executemany(
			"""
			INSERT INTO app_settings (key, value, text_value)
			VALUES ($1, $2, $3)
			ON CONFLICT (key) DO UPDATE
			SET value=EXCLUDED.value, text_value=EXCLUDED.text_value, updated_at=NOW()
			""",
			[(entry.key, entry.value, entry.text_value) for entry in entries],
		)

	async def count_rows(self) -> Mapping[str, int]:
		counts = {}
		for table in DATA_TABLES:
			value = await self._conn.fetchval(f"SELECT COUNT(*) FROM {table}")
			counts[table] = int(value or 0)
		return counts


class PostgresMembershipRepository:
	"""Opens one SERIALIZABLE transaction per unit of work."""

	def __init__(self, pool: asyncpg.Pool | None = None) -> None:
		self._pool = pool

	async def _get_pool(self) -> asyncpg.Pool:
		if self._pool is None:
			self._pool = await get_pool()
		return self._pool

	@asynccontextmanager
	async def transaction(self) -> AsyncIterator[PostgresMembershipSession]:
		pool = await self._get_pool()
		try:
			async with pool.acquire() as conn:
				async with conn.transaction(isolation="serializable"):
					yield PostgresMembershipSession(conn)
		except _TRANSIENT_ERRORS as exc:
			reason = type(exc).__name__
			metrics.inc_transient_failure(reason)
			LOGGER.warning("membership_transaction_transient_failure", extra={"reason": reason})
			raise exceptions.TransientStoreError() from exc


def _subject_from_record(record: Mapping[str, Any]) -> Subject:
	for kind, column in _SUBJECT_COLUMNS.items():
		if record[column] is not None:
			return Subject(kind, record[column])
	raise exceptions.ConsistencyViolation("Attendance row has no subject.")


def _meeting_from_record(record: Mapping[str, Any]) -> Meeting:
	return Meeting(
		id=record["id"],
		meeting_date=record["meeting_date"],
		meeting_type=MeetingType(record["meeting_type"]),
		location=record["location"],
		notes=record["notes"],
		created_at=record["created_at"],
		updated_at=record["updated_at"],
	)


def _attendance_from_record(record: Mapping[str, Any]) -> AttendanceRecord:
	return AttendanceRecord(
		id=record["id"],
		meeting_id=record["meeting_id"],
		subject=_subject_from_record(record),
		status=AttendanceStatus(record["status"]),
		notes=record["notes"],
		created_at=record["created_at"],
	)


def _guest_from_record(record: Mapping[str, Any]) -> Guest:
	return Guest(
		id=record["id"],
		full_name=str(record["full_name"]),
		email=record["email"],
		phone=record["phone"],
		status=GuestStatus(record["status"]),
		invited_by=record["invited_by"],
		total_meetings=int(record["total_meetings"]),
		first_attendance=record["first_attendance"],
		notes=record["notes"],
		created_at=record["created_at"],
		updated_at=record["updated_at"],
	)


def _pipeliner_from_record(record: Mapping[str, Any]) -> Pipeliner:
	return Pipeliner(
		id=record["id"],
		full_name=str(record["full_name"]),
		email=record["email"],
		phone=record["phone"],
		promoted_from_guest_date=record["promoted_from_guest_date"],
		promoted_from_guest_id=record["promoted_from_guest_id"],
		status=PipelinerStatus(record["status"]),
		sponsored_by=record["sponsored_by"],
		guest_meetings_count=int(record["guest_meetings_count"]),
		business_meetings_count=int(record["business_meetings_count"]),
		charity_events_count=int(record["charity_events_count"]),
		is_eligible_for_membership=bool(record["is_eligible_for_membership"]),
		notes=record["notes"],
		created_at=record["created_at"],
		updated_at=record["updated_at"],
	)


def _member_from_record(record: Mapping[str, Any]) -> Member:
	return Member(
		id=record["id"],
		full_name=str(record["full_name"]),
		email=str(record["email"]),
		phone=record["phone"],
		member_number=record["member_number"],
		join_date=record["join_date"],
		status=MemberStatus(record["status"]),
		created_at=record["created_at"],
		updated_at=record["updated_at"],
	)


def _charity_from_record(record: Mapping[str, Any]) -> CharityEvent:
	return CharityEvent(
		id=record["id"],
		event_name=str(record["event_name"]),
		event_date=record["event_date"],
		description=record["description"],
		participant_ids=unique_ids(record["participant_ids"] or ()),
		created_at=record["created_at"],
		updated_at=record["updated_at"],
	)


def _guest_event_from_record(record: Mapping[str, Any]) -> GuestEvent:
	return GuestEvent(
		id=record["id"],
		guest_id=record["guest_id"],
		event_name=str(record["event_name"]),
		event_date=record["event_date"],
		contribution=record["contribution"],
		created_at=record["created_at"],
	)


def _app_setting_from_record(record: Mapping[str, Any]) -> AppSetting:
	return AppSetting(
		key=record["key"],
		value=record["value"],
		text_value=record["text_value"],
		updated_at=record["updated_at"],
	)
