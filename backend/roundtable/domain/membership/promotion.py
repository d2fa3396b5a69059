"""Guest -> pipeliner -> member promotions.

Each promotion is two writes in one serializable transaction: insert the new
row, then flip the status of the source row. The status flip runs under a
savepoint; if it fails the inserted row is deleted before the error
propagates, and the outer rollback still covers a failed compensation.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional
from uuid import UUID, uuid4

from roundtable.domain.membership import eligibility
from roundtable.domain.membership.aggregates import AggregateMaintainer
from roundtable.domain.membership.exceptions import (
	ConflictError,
	MissingRequiredField,
	NotEligible,
	NotFoundError,
	SubjectAlreadyPromoted,
	ValidationError,
)
from roundtable.domain.membership.models import (
	Guest,
	GuestStatus,
	Member,
	MemberStatus,
	Pipeliner,
	PipelinerStatus,
	Subject,
)
from roundtable.domain.membership.repository import MembershipRepository, MembershipSession
from roundtable.obs import metrics

LOGGER = logging.getLogger(__name__)

GUEST_TO_PIPELINER = "guest_to_pipeliner"
PIPELINER_TO_MEMBER = "pipeliner_to_member"


class PromotionOrchestrator:
	def __init__(self, repository: MembershipRepository, maintainer: AggregateMaintainer | None = None) -> None:
		self._repo = repository
		self._maintainer = maintainer or AggregateMaintainer()

	async def promote_guest_to_pipeliner(
		self,
		guest_id: UUID,
		sponsor_member_id: UUID,
		*,
		notes: Optional[str] = None,
		override: bool = False,
		today: Optional[date] = None,
	) -> Pipeliner:
		"""Create a pipeliner from an eligible guest.

		``override`` skips the eligibility gate; the HTTP layer only passes it
		for callers holding the admin token.
		"""
		today = today or date.today()
		try:
			async with self._repo.transaction() as session:
				guest = await session.get_guest(guest_id, for_update=True)
				if guest is None:
					raise NotFoundError("Guest not found.", code="guest_not_found")
				if guest.status == GuestStatus.BECAME_PIPELINER:
					raise SubjectAlreadyPromoted("Guest has already been promoted to pipeliner.")
				if guest.status != GuestStatus.ACTIVE:
					raise ConflictError("Only active guests can be promoted.", code="guest_not_active")
				if await session.get_member(sponsor_member_id) is None:
					raise NotFoundError("Sponsor member not found.", code="sponsor_not_found")

				present, _ = await session.present_stats(Subject.guest(guest_id))
				charity = await session.count_guest_events(guest_id)
				if not eligibility.guest_eligible_for_pipeliner(present, charity):
					missing = eligibility.missing_requirements(present, charity, "meeting")
					if not override:
						raise NotEligible(eligibility.describe_missing("Guest", missing), missing=missing)
					LOGGER.warning(
						"promotion_override",
						extra={"transition": GUEST_TO_PIPELINER, "guest_id": str(guest_id), "missing": missing},
					)

				pipeliner = await session.insert_pipeliner(
					Pipeliner(
						id=uuid4(),
						full_name=guest.full_name,
						email=guest.email,
						phone=guest.phone,
						promoted_from_guest_date=today,
						promoted_from_guest_id=guest.id,
						status=PipelinerStatus.ACTIVE,
						sponsored_by=sponsor_member_id,
						guest_meetings_count=max(present, eligibility.MEETING_TARGET),
						business_meetings_count=present,
						charity_events_count=0,
						is_eligible_for_membership=False,
						notes=notes,
					)
				)
				await self._finish_step(
					session,
					GUEST_TO_PIPELINER,
					step=lambda: self._retire_guest(session, guest, present),
					compensate=lambda: session.delete_pipeliner(pipeliner.id),
					created_id=pipeliner.id,
				)
		except Exception as exc:
			metrics.inc_promotion(GUEST_TO_PIPELINER, _outcome(exc))
			raise
		metrics.inc_promotion(GUEST_TO_PIPELINER, "promoted")
		LOGGER.info(
			"guest_promoted",
			extra={"guest_id": str(guest_id), "pipeliner_id": str(pipeliner.id), "override": override},
		)
		return pipeliner

	async def promote_to_member(
		self,
		pipeliner_id: UUID,
		member_number: Optional[str],
		join_date: Optional[date],
	) -> Member:
		number = (member_number or "").strip()
		if not number:
			raise ValidationError("Member number is required.", code="member_number_required")
		if join_date is None:
			raise ValidationError("Join date is required.", code="join_date_required")

		try:
			async with self._repo.transaction() as session:
				pipeliner = await session.get_pipeliner(pipeliner_id, for_update=True)
				if pipeliner is None:
					raise NotFoundError("Pipeliner not found.", code="pipeliner_not_found")
				if pipeliner.status == PipelinerStatus.BECAME_MEMBER:
					raise SubjectAlreadyPromoted("Pipeliner has already been promoted to member.")
				if pipeliner.status != PipelinerStatus.ACTIVE:
					raise ConflictError("Only active pipeliners can be promoted.", code="pipeliner_not_active")

				refreshed = await self._maintainer.recompute_pipeliner(session, pipeliner_id)
				if refreshed is None or not refreshed.is_eligible_for_membership:
					business = refreshed.business_meetings_count if refreshed else 0
					charity = refreshed.charity_events_count if refreshed else 0
					missing = eligibility.missing_requirements(business, charity, "business meeting")
					raise NotEligible(eligibility.describe_missing("Pipeliner", missing), missing=missing)
				email = (refreshed.email or "").strip()
				if not email:
					raise MissingRequiredField(
						"Email address is required before promoting to member.", code="email_required"
					)

				member = await session.insert_member(
					Member(
						id=uuid4(),
						full_name=refreshed.full_name,
						email=email,
						phone=refreshed.phone,
						member_number=number,
						join_date=join_date,
						status=MemberStatus.ACTIVE,
					)
				)
				await self._finish_step(
					session,
					PIPELINER_TO_MEMBER,
					step=lambda: session.set_pipeliner_status(
						pipeliner_id, PipelinerStatus.BECAME_MEMBER, is_eligible_for_membership=False
					),
					compensate=lambda: session.delete_member(member.id),
					created_id=member.id,
				)
		except Exception as exc:
			metrics.inc_promotion(PIPELINER_TO_MEMBER, _outcome(exc))
			raise
		metrics.inc_promotion(PIPELINER_TO_MEMBER, "promoted")
		LOGGER.info(
			"pipeliner_promoted",
			extra={"pipeliner_id": str(pipeliner_id), "member_id": str(member.id)},
		)
		return member

	async def deactivate_guest(self, guest_id: UUID) -> Guest:
		async with self._repo.transaction() as session:
			guest = await session.get_guest(guest_id, for_update=True)
			if guest is None:
				raise NotFoundError("Guest not found.", code="guest_not_found")
			if guest.status != GuestStatus.ACTIVE:
				raise ConflictError("Only active guests can be deactivated.", code="guest_not_active")
			updated = await session.set_guest_status(guest_id, GuestStatus.INACTIVE)
		LOGGER.info("guest_deactivated", extra={"guest_id": str(guest_id)})
		return updated

	async def deactivate_pipeliner(self, pipeliner_id: UUID) -> Pipeliner:
		async with self._repo.transaction() as session:
			pipeliner = await session.get_pipeliner(pipeliner_id, for_update=True)
			if pipeliner is None:
				raise NotFoundError("Pipeliner not found.", code="pipeliner_not_found")
			if pipeliner.status != PipelinerStatus.ACTIVE:
				raise ConflictError("Only active pipeliners can be deactivated.", code="pipeliner_not_active")
			await session.set_pipeliner_status(
				pipeliner_id,
				PipelinerStatus.INACTIVE,
				is_eligible_for_membership=pipeliner.is_eligible_for_membership,
			)
			updated = await self._maintainer.recompute_pipeliner(session, pipeliner_id)
		LOGGER.info("pipeliner_deactivated", extra={"pipeliner_id": str(pipeliner_id)})
		return updated

	async def _retire_guest(self, session: MembershipSession, guest: Guest, present: int) -> Guest:
		return await session.set_guest_status(
			guest.id,
			GuestStatus.BECAME_PIPELINER,
			total_meetings=max(guest.total_meetings, present),
		)

	async def _finish_step(self, session: MembershipSession, transition: str, *, step, compensate, created_id: UUID) -> None:
		try:
			async with session.savepoint():
				result = await step()
				if result is None:
					raise NotFoundError("Source row vanished during promotion.", code="promotion_source_missing")
		except Exception:
			metrics.inc_promotion_compensation(transition)
			LOGGER.warning(
				"promotion_compensating",
				extra={"transition": transition, "created_id": str(created_id)},
			)
			try:
				await compensate()
			except Exception:
				# outer transaction rollback still discards the inserted row
				LOGGER.exception(
					"promotion_compensation_failed",
					extra={"transition": transition, "created_id": str(created_id)},
				)
			raise


def _outcome(exc: Exception) -> str:
	if isinstance(exc, NotEligible):
		return "not_eligible"
	if isinstance(exc, SubjectAlreadyPromoted):
		return "already_promoted"
	return "failed"
