"""Administrative create / contact-update / delete for guests, pipeliners and members."""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Sequence
from uuid import UUID, uuid4

from roundtable.domain.membership.aggregates import AggregateMaintainer
from roundtable.domain.membership.exceptions import MissingRequiredField, NotFoundError, ValidationError
from roundtable.domain.membership.ledger import restrict_changes
from roundtable.domain.membership.models import (
	Guest,
	GuestStatus,
	Member,
	MemberStatus,
	Pipeliner,
	PipelinerStatus,
)
from roundtable.domain.membership.repository import (
	GUEST_CONTACT_FIELDS,
	MEMBER_FIELDS,
	PIPELINER_CONTACT_FIELDS,
	MembershipRepository,
	MembershipSession,
)
from roundtable.obs import metrics


def _required_name(value: Optional[str]) -> str:
	name = (value or "").strip()
	if not name:
		raise ValidationError("Full name is required.", code="full_name_required")
	return name


def _parse_status(enum_cls, value: Any):
	try:
		return enum_cls(value)
	except ValueError:
		raise ValidationError(f"Unknown status '{value}'.", code="invalid_status") from None


async def _require_member(session: MembershipSession, member_id: UUID, code: str) -> Member:
	member = await session.get_member(member_id)
	if member is None:
		raise NotFoundError("Member not found.", code=code)
	return member


class RosterService:
	"""Subject bookkeeping. Derived counters and statuses are never accepted here."""

	def __init__(self, repository: MembershipRepository, maintainer: AggregateMaintainer | None = None) -> None:
		self._repo = repository
		self._maintainer = maintainer or AggregateMaintainer()

	# guests

	async def create_guest(
		self,
		*,
		full_name: str,
		email: Optional[str] = None,
		phone: Optional[str] = None,
		invited_by: Optional[UUID] = None,
		notes: Optional[str] = None,
	) -> Guest:
		guest = Guest(
			id=uuid4(),
			full_name=_required_name(full_name),
			email=email,
			phone=phone,
			invited_by=invited_by,
			notes=notes,
		)
		async with self._repo.transaction() as session:
			if invited_by is not None:
				await _require_member(session, invited_by, "inviter_not_found")
			created = await session.insert_guest(guest)
		metrics.inc_ledger_write("guests", "create")
		return created

	async def get_guest(self, guest_id: UUID) -> Guest:
		async with self._repo.transaction() as session:
			guest = await session.get_guest(guest_id)
		if guest is None:
			raise NotFoundError("Guest not found.", code="guest_not_found")
		return guest

	async def list_guests(self, *, status: Optional[str] = None) -> Sequence[Guest]:
		if status is not None:
			status = _parse_status(GuestStatus, status).value
		async with self._repo.transaction() as session:
			return await session.list_guests(status=status)

	async def update_guest(self, guest_id: UUID, changes: Mapping[str, Any]) -> Guest:
		payload = restrict_changes(changes, GUEST_CONTACT_FIELDS)
		if "full_name" in payload:
			payload["full_name"] = _required_name(payload["full_name"])
		async with self._repo.transaction() as session:
			if payload.get("invited_by") is not None:
				await _require_member(session, payload["invited_by"], "inviter_not_found")
			updated = await session.update_guest_contact(guest_id, payload)
		if updated is None:
			raise NotFoundError("Guest not found.", code="guest_not_found")
		metrics.inc_ledger_write("guests", "update")
		return updated

	async def delete_guest(self, guest_id: UUID) -> None:
		async with self._repo.transaction() as session:
			if not await session.delete_guest(guest_id):
				raise NotFoundError("Guest not found.", code="guest_not_found")
		metrics.inc_ledger_write("guests", "delete")

	# pipeliners

	async def create_pipeliner(
		self,
		*,
		full_name: str,
		email: Optional[str] = None,
		phone: Optional[str] = None,
		sponsored_by: Optional[UUID] = None,
		guest_meetings_count: int = 0,
		notes: Optional[str] = None,
	) -> Pipeliner:
		if guest_meetings_count < 0:
			raise ValidationError("Guest meeting count cannot be negative.", code="invalid_count")
		pipeliner = Pipeliner(
			id=uuid4(),
			full_name=_required_name(full_name),
			email=email,
			phone=phone,
			sponsored_by=sponsored_by,
			guest_meetings_count=guest_meetings_count,
			notes=notes,
		)
		async with self._repo.transaction() as session:
			if sponsored_by is not None:
				await _require_member(session, sponsored_by, "sponsor_not_found")
			await session.insert_pipeliner(pipeliner)
			created = await self._maintainer.recompute_pipeliner(session, pipeliner.id)
		metrics.inc_ledger_write("pipeliners", "create")
		return created

	async def get_pipeliner(self, pipeliner_id: UUID) -> Pipeliner:
		async with self._repo.transaction() as session:
			pipeliner = await session.get_pipeliner(pipeliner_id)
		if pipeliner is None:
			raise NotFoundError("Pipeliner not found.", code="pipeliner_not_found")
		return pipeliner

	async def list_pipeliners(self, *, status: Optional[str] = None) -> Sequence[Pipeliner]:
		if status is not None:
			status = _parse_status(PipelinerStatus, status).value
		async with self._repo.transaction() as session:
			return await session.list_pipeliners(status=status)

	async def update_pipeliner(self, pipeliner_id: UUID, changes: Mapping[str, Any]) -> Pipeliner:
		payload = restrict_changes(changes, PIPELINER_CONTACT_FIELDS)
		if "full_name" in payload:
			payload["full_name"] = _required_name(payload["full_name"])
		async with self._repo.transaction() as session:
			if payload.get("sponsored_by") is not None:
				await _require_member(session, payload["sponsored_by"], "sponsor_not_found")
			updated = await session.update_pipeliner_contact(pipeliner_id, payload)
		if updated is None:
			raise NotFoundError("Pipeliner not found.", code="pipeliner_not_found")
		metrics.inc_ledger_write("pipeliners", "update")
		return updated

	async def delete_pipeliner(self, pipeliner_id: UUID) -> None:
		async with self._repo.transaction() as session:
			if not await session.delete_pipeliner(pipeliner_id):
				raise NotFoundError("Pipeliner not found.", code="pipeliner_not_found")
		metrics.inc_ledger_write("pipeliners", "delete")

	# members

	async def create_member(
		self,
		*,
		full_name: str,
		email: str,
		join_date: date,
		phone: Optional[str] = None,
		member_number: Optional[str] = None,
		status: str = MemberStatus.ACTIVE.value,
	) -> Member:
		if not (email or "").strip():
			raise MissingRequiredField("Email address is required.", code="email_required")
		if join_date is None:
			raise ValidationError("Join date is required.", code="join_date_required")
		member = Member(
			id=uuid4(),
			full_name=_required_name(full_name),
			email=email.strip(),
			join_date=join_date,
			phone=phone,
			member_number=(member_number or "").strip() or None,
			status=_parse_status(MemberStatus, status),
		)
		async with self._repo.transaction() as session:
			created = await session.insert_member(member)
		metrics.inc_ledger_write("members", "create")
		return created

	async def get_member(self, member_id: UUID) -> Member:
		async with self._repo.transaction() as session:
			return await _require_member(session, member_id, "member_not_found")

	async def list_members(self, *, status: Optional[str] = None) -> Sequence[Member]:
		if status is not None:
			status = _parse_status(MemberStatus, status).value
		async with self._repo.transaction() as session:
			return await session.list_members(status=status)

	async def update_member(self, member_id: UUID, changes: Mapping[str, Any]) -> Member:
		payload = restrict_changes(changes, MEMBER_FIELDS)
		if "full_name" in payload:
			payload["full_name"] = _required_name(payload["full_name"])
		if "email" in payload:
			if not (payload["email"] or "").strip():
				raise MissingRequiredField("Email address is required.", code="email_required")
			payload["email"] = payload["email"].strip()
		if "member_number" in payload:
			payload["member_number"] = (payload["member_number"] or "").strip() or None
		if "join_date" in payload and payload["join_date"] is None:
			raise ValidationError("Join date is required.", code="join_date_required")
		if "status" in payload:
			payload["status"] = _parse_status(MemberStatus, payload["status"])
		async with self._repo.transaction() as session:
			updated = await session.update_member(member_id, payload)
		if updated is None:
			raise NotFoundError("Member not found.", code="member_not_found")
		metrics.inc_ledger_write("members", "update")
		return updated

	async def delete_member(self, member_id: UUID) -> None:
		async with self._repo.transaction() as session:
			if not await session.delete_member(member_id):
				raise NotFoundError("Member not found.", code="member_not_found")
		metrics.inc_ledger_write("members", "delete")
