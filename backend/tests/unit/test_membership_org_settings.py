from __future__ import annotations

from datetime import date

import pytest

from roundtable.domain.membership.exceptions import ValidationError
from roundtable.domain.membership.reporting import ReportingAggregator
from roundtable.settings import settings


@pytest.mark.asyncio
async def test_environment_values_fill_missing_rows(monkeypatch, org_settings) -> None:
	monkeypatch.setattr(settings, "attendance_good_threshold", 85.0)
	monkeypatch.setattr(settings, "default_meeting_location", "Clubhouse")

	current = await org_settings.get_settings()
	assert current.attendance_good_threshold == 85.0
	assert current.attendance_warning_threshold == settings.attendance_warning_threshold
	assert current.default_meeting_location == "Clubhouse"


@pytest.mark.asyncio
async def test_stored_values_override_environment(monkeypatch, org_settings) -> None:
	monkeypatch.setattr(settings, "default_meeting_location", "Clubhouse")
	updated = await org_settings.update_settings(
		{
			"attendance_good_threshold": 90,
			"attendance_warning_threshold": 70,
			"notifications_email_enabled": False,
			"default_meeting_location": "  Harbour Hotel ",
		}
	)

	assert updated.attendance_good_threshold == 90.0
	assert updated.attendance_warning_threshold == 70.0
	assert updated.email_notifications is False
	assert updated.default_meeting_location == "Harbour Hotel"
	assert await org_settings.get_settings() == updated


@pytest.mark.asyncio
async def test_empty_location_clears_environment_default(monkeypatch, org_settings) -> None:
	monkeypatch.setattr(settings, "default_meeting_location", "Clubhouse")
	updated = await org_settings.update_settings({"default_meeting_location": ""})
	assert updated.default_meeting_location is None


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [101, -1, 72.5, True, "80"])
async def test_threshold_must_be_whole_percentage(org_settings, value) -> None:
	with pytest.raises(ValidationError) as excinfo:
		await org_settings.update_settings({"attendance_good_threshold": value})
	assert excinfo.value.code == "invalid_threshold"


@pytest.mark.asyncio
async def test_warning_cannot_exceed_good(org_settings) -> None:
	await org_settings.update_settings({"attendance_good_threshold": 75})
	with pytest.raises(ValidationError) as excinfo:
		await org_settings.update_settings({"attendance_warning_threshold": 80})
	assert excinfo.value.code == "threshold_order"
	assert (await org_settings.get_settings()).attendance_warning_threshold == settings.attendance_warning_threshold


@pytest.mark.asyncio
async def test_unknown_setting_rejected(org_settings) -> None:
	with pytest.raises(ValidationError) as excinfo:
		await org_settings.update_settings({"theme": "dark"})
	assert excinfo.value.code == "unknown_setting"


@pytest.mark.asyncio
async def test_default_location_applies_to_new_meetings(ledger, org_settings) -> None:
	await org_settings.update_settings({"default_meeting_location": "Harbour Hotel"})

	defaulted = await ledger.create_meeting(meeting_date=date(2024, 9, 3))
	explicit = await ledger.create_meeting(meeting_date=date(2024, 9, 10), location="Town Hall")
	assert defaulted.location == "Harbour Hotel"
	assert explicit.location == "Town Hall"


@pytest.mark.asyncio
async def test_member_bands_follow_stored_thresholds(repo, ledger, org_settings, sponsor) -> None:
	first = await ledger.create_meeting(meeting_date=date(2024, 9, 3))
	second = await ledger.create_meeting(meeting_date=date(2024, 9, 10))
	await ledger.record_attendance(first.id, "member", sponsor.id, "present")
	await ledger.record_attendance(second.id, "member", sponsor.id, "absent")
	reporting = ReportingAggregator(repo)

	(row,) = await reporting.member_attendance_summary()
	assert row.attendance_rate == 50.0
	assert row.band == "critical"

	await org_settings.update_settings({"attendance_good_threshold": 50, "attendance_warning_threshold": 40})
	(row,) = await reporting.member_attendance_summary()
	assert row.band == "good"


@pytest.mark.asyncio
async def test_data_stats_count_each_table(ledger, roster, org_settings, sponsor) -> None:
	guest = await roster.create_guest(full_name="Gil Guest")
	meeting = await ledger.create_meeting(meeting_date=date(2024, 9, 3))
	await ledger.record_attendance(meeting.id, "guest", guest.id, "present")
	await ledger.record_guest_event(guest.id, event_name="Bake sale", event_date=date(2024, 9, 7))

	stats = await org_settings.data_stats()
	assert stats == {
		"members": 1,
		"meetings": 1,
		"attendance": 1,
		"guests": 1,
		"pipeliners": 0,
		"charity_events": 0,
		"guest_events": 1,
	}
