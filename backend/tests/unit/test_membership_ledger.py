from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest

from roundtable.domain.membership.exceptions import (
	DuplicateAttendance,
	InvalidParticipant,
	InvalidSubject,
	NotFoundError,
	ValidationError,
)
from roundtable.domain.membership.models import AttendanceStatus, MeetingType, Subject


@pytest.mark.asyncio
async def test_create_meeting_derives_month_and_year(ledger) -> None:
	meeting = await ledger.create_meeting(meeting_date=date(2024, 11, 7), meeting_type="charity", location="Hall")
	assert meeting.meeting_type == MeetingType.CHARITY
	assert meeting.meeting_month == "November"
	assert meeting.meeting_year == 2024


@pytest.mark.asyncio
async def test_unknown_meeting_type_rejected(ledger) -> None:
	with pytest.raises(ValidationError) as excinfo:
		await ledger.create_meeting(meeting_date=date(2024, 11, 7), meeting_type="picnic")
	assert excinfo.value.code == "invalid_meeting_type"


@pytest.mark.asyncio
async def test_list_meetings_filters_by_range_and_type(ledger) -> None:
	await ledger.create_meeting(meeting_date=date(2024, 1, 10))
	march = await ledger.create_meeting(meeting_date=date(2024, 3, 10))
	await ledger.create_meeting(meeting_date=date(2024, 3, 20), meeting_type="special")

	rows = await ledger.list_meetings(start=date(2024, 3, 1), end=date(2024, 3, 31), meeting_type="business")
	assert [row.id for row in rows] == [march.id]


@pytest.mark.asyncio
async def test_duplicate_attendance_rejected(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	meeting = await ledger.create_meeting(meeting_date=date(2024, 2, 1))
	await ledger.record_attendance(meeting.id, "guest", guest.id, "present")

	with pytest.raises(DuplicateAttendance):
		await ledger.record_attendance(meeting.id, "guest", guest.id, "apology")

	records = await ledger.list_attendance(meeting_id=meeting.id)
	assert [record.status for record in records] == [AttendanceStatus.PRESENT]
	assert (await roster.get_guest(guest.id)).total_meetings == 1


@pytest.mark.asyncio
async def test_same_subject_id_with_other_kind_is_distinct(ledger, roster, sponsor) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	meeting = await ledger.create_meeting(meeting_date=date(2024, 2, 1))
	await ledger.record_attendance(meeting.id, "guest", guest.id, "present")
	await ledger.record_attendance(meeting.id, "member", sponsor.id, "present")
	assert len(await ledger.list_attendance(meeting_id=meeting.id)) == 2


@pytest.mark.asyncio
async def test_attendance_for_unknown_subject_rejected(ledger) -> None:
	meeting = await ledger.create_meeting(meeting_date=date(2024, 2, 1))
	with pytest.raises(InvalidSubject):
		await ledger.record_attendance(meeting.id, "pipeliner", uuid4(), "present")


@pytest.mark.asyncio
async def test_attendance_for_unknown_meeting_rejected(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	with pytest.raises(NotFoundError) as excinfo:
		await ledger.record_attendance(uuid4(), "guest", guest.id, "present")
	assert excinfo.value.code == "meeting_not_found"


@pytest.mark.asyncio
async def test_unknown_status_and_kind_rejected(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	meeting = await ledger.create_meeting(meeting_date=date(2024, 2, 1))
	with pytest.raises(ValidationError) as status_exc:
		await ledger.record_attendance(meeting.id, "guest", guest.id, "late")
	assert status_exc.value.code == "invalid_status"
	with pytest.raises(ValidationError) as kind_exc:
		await ledger.record_attendance(meeting.id, "visitor", guest.id, "present")
	assert kind_exc.value.code == "invalid_subject_kind"


@pytest.mark.asyncio
async def test_status_change_recomputes_counter(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	meeting = await ledger.create_meeting(meeting_date=date(2024, 2, 1))
	record = await ledger.record_attendance(meeting.id, "guest", guest.id, "present")

	await ledger.update_attendance(record.id, {"status": "apology"})
	assert (await roster.get_guest(guest.id)).total_meetings == 0

	await ledger.delete_attendance(record.id)
	assert await ledger.list_attendance(subject=Subject.guest(guest.id)) == []


@pytest.mark.asyncio
async def test_attendance_edit_rejects_unknown_fields(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	meeting = await ledger.create_meeting(meeting_date=date(2024, 2, 1))
	record = await ledger.record_attendance(meeting.id, "guest", guest.id, "present")
	with pytest.raises(ValidationError) as excinfo:
		await ledger.update_attendance(record.id, {"meeting_id": uuid4()})
	assert excinfo.value.code == "field_not_editable"


@pytest.mark.asyncio
async def test_guest_cannot_join_charity_event(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	with pytest.raises(InvalidParticipant) as excinfo:
		await ledger.create_charity_event(
			event_name="Fun run", event_date=date(2024, 5, 4), participant_ids=[guest.id]
		)
	assert excinfo.value.extra() == {"participant_ids": [str(guest.id)]}
	assert await ledger.list_charity_events() == []


@pytest.mark.asyncio
async def test_charity_event_requires_date(ledger) -> None:
	event = await ledger.create_charity_event(event_name="Fun run", event_date=date(2024, 5, 4))
	with pytest.raises(ValidationError) as excinfo:
		await ledger.update_charity_event(event.id, {"event_date": None})
	assert excinfo.value.code == "event_date_required"


@pytest.mark.asyncio
async def test_guest_events_count_toward_eligibility(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	for day in (1, 8, 15):
		meeting = await ledger.create_meeting(meeting_date=date(2024, 2, day))
		await ledger.record_attendance(meeting.id, "guest", guest.id, "present")

	before = await ledger.get_guest_eligibility(guest.id)
	assert before.eligible is False
	assert before.missing == ["1 more charity event"]

	event = await ledger.record_guest_event(guest.id, event_name="Bake sale", event_date=date(2024, 2, 20))
	after = await ledger.get_guest_eligibility(guest.id)
	assert after.eligible is True
	assert after.present_count == 3
	assert after.charity_count == 1

	with pytest.raises(NotFoundError):
		await ledger.delete_guest_event(event.id, guest_id=uuid4())
	await ledger.delete_guest_event(event.id, guest_id=guest.id)
	assert await ledger.list_guest_events(guest.id) == []


@pytest.mark.asyncio
async def test_pipeliner_eligibility_reports_progress(ledger, roster) -> None:
	pipeliner = await roster.create_pipeliner(full_name="Pat Pipeliner")
	meeting = await ledger.create_meeting(meeting_date=date(2024, 2, 1))
	await ledger.record_attendance(meeting.id, "pipeliner", pipeliner.id, "present")

	result = await ledger.get_pipeliner_eligibility(pipeliner.id)
	assert result.business_count == 1
	assert result.eligible is False
	assert result.missing == ["2 more business meetings", "1 more charity event"]
	assert result.progress.meeting_progress == pytest.approx(33.33)


@pytest.mark.asyncio
async def test_guest_delete_cascades_ledger_rows(ledger, roster) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	meeting = await ledger.create_meeting(meeting_date=date(2024, 2, 1))
	await ledger.record_attendance(meeting.id, "guest", guest.id, "present")
	await ledger.record_guest_event(guest.id, event_name="Bake sale", event_date=date(2024, 2, 20))

	await roster.delete_guest(guest.id)

	assert await ledger.list_attendance(meeting_id=meeting.id) == []
	with pytest.raises(NotFoundError):
		await ledger.list_guest_events(guest.id)


@pytest.mark.asyncio
async def test_charity_event_resaves_after_participant_deleted(ledger, roster, sponsor) -> None:
	pipeliner = await roster.create_pipeliner(full_name="Pat Pipeliner")
	event = await ledger.create_charity_event(
		event_name="Soup kitchen", event_date=date(2024, 5, 4), participant_ids=[pipeliner.id, sponsor.id]
	)
	await roster.delete_pipeliner(pipeliner.id)

	stored = await ledger.get_charity_event(event.id)
	resaved = await ledger.record_charity_participation(event.id, stored.participant_ids)
	assert resaved.participant_ids == (pipeliner.id, sponsor.id)

	renamed = await ledger.update_charity_event(
		event.id, {"event_name": "Soup kitchen (spring)", "participant_ids": list(stored.participant_ids)}
	)
	assert renamed.event_name == "Soup kitchen (spring)"


@pytest.mark.asyncio
async def test_new_participants_are_still_validated(ledger, roster, sponsor) -> None:
	pipeliner = await roster.create_pipeliner(full_name="Pat Pipeliner")
	event = await ledger.create_charity_event(
		event_name="Soup kitchen", event_date=date(2024, 5, 4), participant_ids=[pipeliner.id]
	)
	await roster.delete_pipeliner(pipeliner.id)
	stranger = uuid4()

	with pytest.raises(InvalidParticipant) as excinfo:
		await ledger.record_charity_participation(event.id, [pipeliner.id, sponsor.id, stranger])
	assert excinfo.value.participant_ids == [str(stranger)]


@pytest.mark.asyncio
async def test_promoted_pipeliner_eligibility_matches_stored_flag(ledger, roster, orchestrator, sponsor) -> None:
	pipeliner = await roster.create_pipeliner(full_name="Pat Pipeliner", email="pat@example.org")
	for day in (2, 9, 16):
		meeting = await ledger.create_meeting(meeting_date=date(2024, 7, day))
		await ledger.record_attendance(meeting.id, "pipeliner", pipeliner.id, "present")
	await ledger.create_charity_event(
		event_name="Soup kitchen", event_date=date(2024, 7, 20), participant_ids=[pipeliner.id]
	)
	assert (await ledger.get_pipeliner_eligibility(pipeliner.id)).eligible is True

	await orchestrator.promote_to_member(pipeliner.id, "RT-099", date(2024, 8, 1))

	result = await ledger.get_pipeliner_eligibility(pipeliner.id)
	stored = await roster.get_pipeliner(pipeliner.id)
	assert result.eligible is False
	assert result.eligible == stored.is_eligible_for_membership
	assert result.business_count == 3
