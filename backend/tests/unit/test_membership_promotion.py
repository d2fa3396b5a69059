from __future__ import annotations

import asyncio
from datetime import date
from uuid import uuid4

import pytest
import pytest_asyncio
from prometheus_client import REGISTRY

from roundtable.domain.membership.exceptions import (
	ConflictError,
	DuplicateIdentifier,
	MissingRequiredField,
	NotEligible,
	NotFoundError,
	SubjectAlreadyPromoted,
	ValidationError,
)
from roundtable.domain.membership.memory_repo import InMemoryMembershipSession
from roundtable.domain.membership.models import GuestStatus, Member, MemberStatus, Pipeliner, PipelinerStatus


async def _attend(ledger, kind: str, subject_id, statuses) -> None:
	for offset, status in enumerate(statuses):
		meeting = await ledger.create_meeting(meeting_date=date(2024, 6, 1 + offset * 7))
		await ledger.record_attendance(meeting.id, kind, subject_id, status)


@pytest_asyncio.fixture
async def eligible_guest(ledger, roster, sponsor):
	guest = await roster.create_guest(full_name="Gil Guest", email="gil@example.org", invited_by=sponsor.id)
	await _attend(ledger, "guest", guest.id, ["present", "present", "present"])
	await ledger.record_guest_event(guest.id, event_name="Bake sale", event_date=date(2024, 6, 30))
	return guest


@pytest_asyncio.fixture
async def eligible_pipeliner(ledger, roster, sponsor):
	pipeliner = await roster.create_pipeliner(
		full_name="Pat Pipeliner", email="pat@example.org", sponsored_by=sponsor.id
	)
	await _attend(ledger, "pipeliner", pipeliner.id, ["present", "present", "present"])
	await ledger.create_charity_event(
		event_name="Soup kitchen", event_date=date(2024, 7, 1), participant_ids=[pipeliner.id]
	)
	return pipeliner


@pytest.mark.asyncio
async def test_guest_with_two_meetings_is_not_eligible(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	await _attend(ledger, "guest", guest.id, ["present", "present", "apology"])

	result = await ledger.get_guest_eligibility(guest.id)
	assert result.eligible is False
	assert result.present_count == 2


@pytest.mark.asyncio
async def test_third_meeting_alone_does_not_make_guest_eligible(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	await _attend(ledger, "guest", guest.id, ["present", "present", "present"])
	assert (await ledger.get_guest_eligibility(guest.id)).eligible is False

	await ledger.record_guest_event(guest.id, event_name="Fun run", event_date=date(2024, 7, 2))
	assert (await ledger.get_guest_eligibility(guest.id)).eligible is True


@pytest.mark.asyncio
async def test_promote_guest_to_pipeliner(orchestrator, roster, eligible_guest, sponsor) -> None:
	pipeliner = await orchestrator.promote_guest_to_pipeliner(
		eligible_guest.id, sponsor.id, today=date(2024, 7, 5)
	)

	assert pipeliner.full_name == "Gil Guest"
	assert pipeliner.email == "gil@example.org"
	assert pipeliner.sponsored_by == sponsor.id
	assert pipeliner.promoted_from_guest_id == eligible_guest.id
	assert pipeliner.promoted_from_guest_date == date(2024, 7, 5)
	assert pipeliner.guest_meetings_count == 3
	assert pipeliner.status == PipelinerStatus.ACTIVE

	guest = await roster.get_guest(eligible_guest.id)
	assert guest.status == GuestStatus.BECAME_PIPELINER
	assert guest.total_meetings == 3

	with pytest.raises(SubjectAlreadyPromoted):
		await orchestrator.promote_guest_to_pipeliner(eligible_guest.id, sponsor.id)
	assert len(await roster.list_pipeliners()) == 1


@pytest.mark.asyncio
async def test_guest_promotion_blocked_when_not_eligible(orchestrator, roster, ledger, sponsor) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	await _attend(ledger, "guest", guest.id, ["present"])

	with pytest.raises(NotEligible) as excinfo:
		await orchestrator.promote_guest_to_pipeliner(guest.id, sponsor.id)
	assert excinfo.value.missing == ["2 more meetings", "1 more charity event"]
	assert (await roster.get_guest(guest.id)).status == GuestStatus.ACTIVE
	assert await roster.list_pipeliners() == []


@pytest.mark.asyncio
async def test_guest_promotion_override_skips_gate(orchestrator, roster, sponsor) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	pipeliner = await orchestrator.promote_guest_to_pipeliner(guest.id, sponsor.id, override=True)
	assert pipeliner.guest_meetings_count == 3
	assert pipeliner.business_meetings_count == 0
	assert (await roster.get_guest(guest.id)).status == GuestStatus.BECAME_PIPELINER


@pytest.mark.asyncio
async def test_guest_promotion_requires_sponsor(orchestrator, eligible_guest) -> None:
	with pytest.raises(NotFoundError) as excinfo:
		await orchestrator.promote_guest_to_pipeliner(eligible_guest.id, uuid4())
	assert excinfo.value.code == "sponsor_not_found"


def _compensations(transition: str) -> float:
	value = REGISTRY.get_sample_value("roundtable_promotion_compensations_total", {"transition": transition})
	return value or 0.0


def _record_deletes(monkeypatch, method: str) -> list:
	deleted = []
	original = getattr(InMemoryMembershipSession, method)

	async def _recording(self, row_id):
		deleted.append(row_id)
		return await original(self, row_id)

	monkeypatch.setattr(InMemoryMembershipSession, method, _recording)
	return deleted


@pytest.mark.asyncio
async def test_failed_status_flip_is_compensated(monkeypatch, orchestrator, roster, eligible_guest, sponsor) -> None:
	async def _boom(self, guest_id, status, *, total_meetings=None):
		raise RuntimeError("status write failed")

	monkeypatch.setattr(InMemoryMembershipSession, "set_guest_status", _boom)
	deleted = _record_deletes(monkeypatch, "delete_pipeliner")
	before = _compensations("guest_to_pipeliner")

	with pytest.raises(RuntimeError):
		await orchestrator.promote_guest_to_pipeliner(eligible_guest.id, sponsor.id)

	assert len(deleted) == 1
	assert deleted[0] != eligible_guest.id
	assert _compensations("guest_to_pipeliner") == before + 1
	assert (await roster.get_guest(eligible_guest.id)).status == GuestStatus.ACTIVE
	assert await roster.list_pipeliners() == []


@pytest.mark.asyncio
async def test_failed_member_step_is_compensated(monkeypatch, orchestrator, roster, eligible_pipeliner, sponsor) -> None:
	async def _boom(self, pipeliner_id, status, *, is_eligible_for_membership):
		raise RuntimeError("status write failed")

	monkeypatch.setattr(InMemoryMembershipSession, "set_pipeliner_status", _boom)
	deleted = _record_deletes(monkeypatch, "delete_member")
	before = _compensations("pipeliner_to_member")

	with pytest.raises(RuntimeError):
		await orchestrator.promote_to_member(eligible_pipeliner.id, "RT-099", date(2024, 8, 1))

	assert len(deleted) == 1
	assert deleted[0] != sponsor.id
	assert _compensations("pipeliner_to_member") == before + 1
	assert [member.id for member in await roster.list_members()] == [sponsor.id]
	assert (await roster.get_pipeliner(eligible_pipeliner.id)).status == PipelinerStatus.ACTIVE


@pytest.mark.asyncio
async def test_successful_promotion_issues_no_compensation(monkeypatch, orchestrator, eligible_guest, sponsor) -> None:
	deleted = _record_deletes(monkeypatch, "delete_pipeliner")
	await orchestrator.promote_guest_to_pipeliner(eligible_guest.id, sponsor.id)
	assert deleted == []


@pytest.mark.asyncio
async def test_concurrent_guest_promotions_promote_once(orchestrator, roster, eligible_guest, sponsor) -> None:
	results = await asyncio.gather(
		orchestrator.promote_guest_to_pipeliner(eligible_guest.id, sponsor.id),
		orchestrator.promote_guest_to_pipeliner(eligible_guest.id, sponsor.id),
		return_exceptions=True,
	)

	assert len([result for result in results if isinstance(result, Pipeliner)]) == 1
	assert len([result for result in results if isinstance(result, SubjectAlreadyPromoted)]) == 1
	assert len(await roster.list_pipeliners()) == 1


@pytest.mark.asyncio
async def test_concurrent_member_promotions_promote_once(orchestrator, roster, eligible_pipeliner) -> None:
	results = await asyncio.gather(
		orchestrator.promote_to_member(eligible_pipeliner.id, "RT-099", date(2024, 8, 1)),
		orchestrator.promote_to_member(eligible_pipeliner.id, "RT-100", date(2024, 8, 1)),
		return_exceptions=True,
	)

	assert len([result for result in results if isinstance(result, Member)]) == 1
	assert len([result for result in results if isinstance(result, SubjectAlreadyPromoted)]) == 1
	assert len(await roster.list_members()) == 2

@pytest.mark.asyncio
async def test_inactive_guest_cannot_be_promoted(orchestrator, eligible_guest, sponsor) -> None:
	await orchestrator.deactivate_guest(eligible_guest.id)
	with pytest.raises(ConflictError) as excinfo:
		await orchestrator.promote_guest_to_pipeliner(eligible_guest.id, sponsor.id)
	assert excinfo.value.code == "guest_not_active"


@pytest.mark.asyncio
async def test_promote_pipeliner_to_member(orchestrator, roster, eligible_pipeliner) -> None:
	member = await orchestrator.promote_to_member(eligible_pipeliner.id, " RT-099 ", date(2024, 8, 1))

	assert member.member_number == "RT-099"
	assert member.status == MemberStatus.ACTIVE
	assert member.email == "pat@example.org"
	assert member.join_date == date(2024, 8, 1)

	pipeliner = await roster.get_pipeliner(eligible_pipeliner.id)
	assert pipeliner.status == PipelinerStatus.BECAME_MEMBER
	assert pipeliner.is_eligible_for_membership is False

	with pytest.raises(SubjectAlreadyPromoted):
		await orchestrator.promote_to_member(eligible_pipeliner.id, "RT-100", date(2024, 8, 1))


@pytest.mark.asyncio
async def test_member_promotion_blocked_when_not_eligible(orchestrator, roster) -> None:
	pipeliner = await roster.create_pipeliner(full_name="Pat Pipeliner", email="pat@example.org")
	with pytest.raises(NotEligible) as excinfo:
		await orchestrator.promote_to_member(pipeliner.id, "RT-099", date(2024, 8, 1))
	assert str(excinfo.value).startswith("Pipeliner still needs 3 more business meetings")
	assert len(await roster.list_members()) == 0


@pytest.mark.asyncio
async def test_member_promotion_validates_input(orchestrator, eligible_pipeliner) -> None:
	with pytest.raises(ValidationError) as number_exc:
		await orchestrator.promote_to_member(eligible_pipeliner.id, "  ", date(2024, 8, 1))
	assert number_exc.value.code == "member_number_required"
	with pytest.raises(ValidationError) as date_exc:
		await orchestrator.promote_to_member(eligible_pipeliner.id, "RT-099", None)
	assert date_exc.value.code == "join_date_required"


@pytest.mark.asyncio
async def test_member_promotion_requires_email(orchestrator, roster, eligible_pipeliner) -> None:
	await roster.update_pipeliner(eligible_pipeliner.id, {"email": None})
	with pytest.raises(MissingRequiredField):
		await orchestrator.promote_to_member(eligible_pipeliner.id, "RT-099", date(2024, 8, 1))
	assert (await roster.get_pipeliner(eligible_pipeliner.id)).status == PipelinerStatus.ACTIVE


@pytest.mark.asyncio
async def test_duplicate_member_number_leaves_pipeliner_active(orchestrator, roster, eligible_pipeliner) -> None:
	with pytest.raises(DuplicateIdentifier) as excinfo:
		await orchestrator.promote_to_member(eligible_pipeliner.id, "RT-001", date(2024, 8, 1))
	assert excinfo.value.code == "member_number_exists"

	pipeliner = await roster.get_pipeliner(eligible_pipeliner.id)
	assert pipeliner.status == PipelinerStatus.ACTIVE
	assert pipeliner.is_eligible_for_membership is True
	assert len(await roster.list_members()) == 1


@pytest.mark.asyncio
async def test_deactivated_pipeliner_keeps_counters(orchestrator, eligible_pipeliner) -> None:
	pipeliner = await orchestrator.deactivate_pipeliner(eligible_pipeliner.id)
	assert pipeliner.status == PipelinerStatus.INACTIVE
	assert pipeliner.business_meetings_count == 3
	assert pipeliner.is_eligible_for_membership is True

	with pytest.raises(ConflictError) as excinfo:
		await orchestrator.promote_to_member(eligible_pipeliner.id, "RT-099", date(2024, 8, 1))
	assert excinfo.value.code == "pipeliner_not_active"
