"""Recompute-on-write maintenance of guest and pipeliner counters.

Counters are always re-derived from the ledgers, never adjusted by deltas.
Callers invoke the maintainer inside the transaction that mutated the
ledger, so a failed recompute rolls the mutation back with it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union
from uuid import UUID

from roundtable.domain.membership import eligibility
from roundtable.domain.membership.exceptions import ConsistencyViolation
from roundtable.domain.membership.models import Guest, Pipeliner, PipelinerStatus, Subject, SubjectKind
from roundtable.domain.membership.repository import MembershipSession
from roundtable.obs import metrics

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RecomputeSummary:
	guests: int = 0
	pipeliners: int = 0


def order_subjects(subjects: Iterable[Subject]) -> List[Subject]:
	"""Deduplicate and sort subjects into the order their rows are locked in."""
	return sorted(set(subjects), key=lambda subject: subject.lock_key)


def pipeliner_flag(status: PipelinerStatus, business_meetings_count: int, charity_events_count: int) -> bool:
	if status == PipelinerStatus.BECAME_MEMBER:
		return False
	return eligibility.pipeliner_eligible_for_membership(business_meetings_count, charity_events_count)


def _verify(kind: str, subject_id: UUID, expected: dict, row) -> None:
	mismatched = {
		name: {"expected": value, "stored": getattr(row, name)}
		for name, value in expected.items()
		if getattr(row, name) != value
	}
	if not mismatched:
		return
	metrics.inc_consistency_violation()
	LOGGER.error(
		"aggregate_consistency_violation",
		extra={"subject_kind": kind, "subject_id": str(subject_id), "fields": mismatched},
	)
	raise ConsistencyViolation(f"Stored {kind} counters do not match the ledger.")


class AggregateMaintainer:
	"""Keeps derived counters on guests and pipeliners aligned with the ledgers."""

	async def recompute_guest(self, session: MembershipSession, guest_id: UUID) -> Optional[Guest]:
		guest = await session.get_guest(guest_id, for_update=True)
		if guest is None:
			return None
		present, first_attendance = await session.present_stats(Subject.guest(guest_id))
		row = await session.write_guest_counters(guest_id, total_meetings=present, first_attendance=first_attendance)
		if row is None:
			raise ConsistencyViolation("Guest row disappeared during recompute.")
		_verify("guest", guest_id, {"total_meetings": present, "first_attendance": first_attendance}, row)
		metrics.inc_recompute("guest")
		return row

	async def recompute_pipeliner(self, session: MembershipSession, pipeliner_id: UUID) -> Optional[Pipeliner]:
		pipeliner = await session.get_pipeliner(pipeliner_id, for_update=True)
		if pipeliner is None:
			return None
		business, _ = await session.present_stats(Subject.pipeliner(pipeliner_id))
		charity = await session.count_charity_participation(pipeliner_id)
		eligible = pipeliner_flag(pipeliner.status, business, charity)
		row = await session.write_pipeliner_counters(
			pipeliner_id,
			business_meetings_count=business,
			charity_events_count=charity,
			is_eligible_for_membership=eligible,
		)
		if row is None:
			raise ConsistencyViolation("Pipeliner row disappeared during recompute.")
		_verify(
			"pipeliner",
			pipeliner_id,
			{
				"business_meetings_count": business,
				"charity_events_count": charity,
				"is_eligible_for_membership": eligible,
			},
			row,
		)
		metrics.inc_recompute("pipeliner")
		return row

	async def recompute_subject(
		self, session: MembershipSession, subject: Subject
	) -> Union[Guest, Pipeliner, None]:
		if subject.kind == SubjectKind.GUEST:
			return await self.recompute_guest(session, subject.id)
		if subject.kind == SubjectKind.PIPELINER:
			return await self.recompute_pipeliner(session, subject.id)
		# members carry no persisted counters
		return None

	async def recompute_subjects(self, session: MembershipSession, subjects: Iterable[Subject]) -> None:
		for subject in order_subjects(subjects):
			await self.recompute_subject(session, subject)

	async def recompute_participants(self, session: MembershipSession, participant_ids: Iterable[UUID]) -> None:
		"""Recompute every pipeliner among a charity participant set."""
		subjects = []
		for participant_id in set(participant_ids):
			if await session.get_pipeliner(participant_id) is not None:
				subjects.append(Subject.pipeliner(participant_id))
		await self.recompute_subjects(session, subjects)

	async def recompute_all(self, session: MembershipSession) -> RecomputeSummary:
		subjects = [Subject.guest(guest.id) for guest in await session.list_guests()]
		subjects.extend(Subject.pipeliner(pipeliner.id) for pipeliner in await session.list_pipeliners())
		summary = RecomputeSummary()
		for subject in order_subjects(subjects):
			if await self.recompute_subject(session, subject) is None:
				continue
			if subject.kind == SubjectKind.GUEST:
				summary.guests += 1
			else:
				summary.pipeliners += 1
		LOGGER.info("aggregates_recomputed", extra={"guests": summary.guests, "pipeliners": summary.pipeliners})
		return summary
