from __future__ import annotations

import pytest

ADMIN = {"X-Admin-Token": "test-admin-token"}


async def _create_member(client, number: str = "RT-001", email: str = "sam@example.org") -> dict:
	resp = await client.post(
		"/api/members",
		json={"full_name": "Sam Sponsor", "email": email, "member_number": number, "join_date": "2020-01-01"},
	)
	assert resp.status_code == 201, resp.text
	return resp.json()


async def _attend(client, kind: str, subject_id: str, dates) -> None:
	for meeting_date in dates:
		meeting = await client.post("/api/meetings", json={"meeting_date": meeting_date})
		assert meeting.status_code == 201, meeting.text
		resp = await client.post(
			"/api/attendance",
			json={
				"meeting_id": meeting.json()["id"],
				"subject_kind": kind,
				"subject_id": subject_id,
				"status": "present",
			},
		)
		assert resp.status_code == 201, resp.text


@pytest.mark.asyncio
async def test_health_endpoints(api_client) -> None:
	live = await api_client.get("/health/live")
	assert live.status_code == 200
	assert live.json() == {"status": "ok"}

	ready = await api_client.get("/health/ready")
	assert ready.status_code == 200
	assert ready.json()["storage"] == "memory"


@pytest.mark.asyncio
async def test_metrics_requires_admin(api_client) -> None:
	denied = await api_client.get("/metrics")
	assert denied.status_code == 403

	allowed = await api_client.get("/metrics", headers=ADMIN)
	assert allowed.status_code == 200
	assert "roundtable_http_requests_total" in allowed.text


@pytest.mark.asyncio
async def test_meeting_create_and_read(api_client) -> None:
	resp = await api_client.post(
		"/api/meetings", json={"meeting_date": "2024-05-14", "meeting_type": "special", "location": "Clubhouse"}
	)
	assert resp.status_code == 201
	body = resp.json()
	assert body["meeting_month"] == "May"
	assert body["meeting_year"] == 2024
	assert resp.headers.get("X-Request-Id")

	fetched = await api_client.get(f"/api/meetings/{body['id']}")
	assert fetched.json()["location"] == "Clubhouse"

	listed = await api_client.get("/api/meetings", params={"meeting_type": "special"})
	assert [row["id"] for row in listed.json()] == [body["id"]]


@pytest.mark.asyncio
async def test_duplicate_attendance_returns_conflict(api_client) -> None:
	guest = (await api_client.post("/api/guests", json={"full_name": "Gil Guest"})).json()
	meeting = (await api_client.post("/api/meetings", json={"meeting_date": "2024-05-14"})).json()
	payload = {"meeting_id": meeting["id"], "subject_kind": "guest", "subject_id": guest["id"], "status": "present"}

	first = await api_client.post("/api/attendance", json=payload)
	assert first.status_code == 201
	second = await api_client.post("/api/attendance", json=payload)
	assert second.status_code == 409
	body = second.json()
	assert body["code"] == "attendance_exists"
	assert body["request_id"]

	roster = await api_client.get(f"/api/guests/{guest['id']}")
	assert roster.json()["total_meetings"] == 1


@pytest.mark.asyncio
async def test_counters_cannot_be_written_directly(api_client) -> None:
	guest = (await api_client.post("/api/guests", json={"full_name": "Gil Guest"})).json()
	resp = await api_client.patch(f"/api/guests/{guest['id']}", json={"full_name": "Gil G.", "total_meetings": 9})
	assert resp.status_code == 200
	assert resp.json()["total_meetings"] == 0
	assert resp.json()["full_name"] == "Gil G."


@pytest.mark.asyncio
async def test_guest_promotion_flow(api_client) -> None:
	sponsor = await _create_member(api_client)
	guest = (
		await api_client.post("/api/guests", json={"full_name": "Gil Guest", "invited_by": sponsor["id"]})
	).json()
	await _attend(api_client, "guest", guest["id"], ["2024-05-07", "2024-05-14"])

	blocked = await api_client.post(
		f"/api/guests/{guest['id']}/promote", json={"sponsor_member_id": sponsor["id"]}
	)
	assert blocked.status_code == 422
	body = blocked.json()
	assert body["code"] == "not_eligible"
	assert body["missing"] == ["1 more meeting", "1 more charity event"]
	assert body["request_id"]

	forbidden = await api_client.post(
		f"/api/guests/{guest['id']}/promote", json={"sponsor_member_id": sponsor["id"], "override": True}
	)
	assert forbidden.status_code == 403
	assert forbidden.json()["detail"] == "override_requires_admin"

	await _attend(api_client, "guest", guest["id"], ["2024-05-21"])
	event = await api_client.post(
		f"/api/guests/{guest['id']}/events", json={"event_name": "Bake sale", "event_date": "2024-05-25"}
	)
	assert event.status_code == 201

	eligibility = await api_client.get(f"/api/guests/{guest['id']}/eligibility")
	assert eligibility.json()["eligible"] is True

	promoted = await api_client.post(
		f"/api/guests/{guest['id']}/promote", json={"sponsor_member_id": sponsor["id"]}
	)
	assert promoted.status_code == 201, promoted.text
	pipeliner = promoted.json()
	assert pipeliner["promoted_from_guest_id"] == guest["id"]
	assert pipeliner["guest_meetings_count"] == 3

	again = await api_client.post(
		f"/api/guests/{guest['id']}/promote", json={"sponsor_member_id": sponsor["id"]}
	)
	assert again.status_code == 409
	assert again.json()["code"] == "already_promoted"


@pytest.mark.asyncio
async def test_admin_override_promotes_ineligible_guest(api_client) -> None:
	sponsor = await _create_member(api_client)
	guest = (await api_client.post("/api/guests", json={"full_name": "Gil Guest"})).json()
	resp = await api_client.post(
		f"/api/guests/{guest['id']}/promote",
		json={"sponsor_member_id": sponsor["id"], "override": True},
		headers=ADMIN,
	)
	assert resp.status_code == 201, resp.text
	assert resp.json()["sponsored_by"] == sponsor["id"]


@pytest.mark.asyncio
async def test_pipeliner_promotion_flow(api_client) -> None:
	sponsor = await _create_member(api_client)
	pipeliner = (
		await api_client.post(
			"/api/pipeliners",
			json={"full_name": "Pat Pipeliner", "email": "pat@example.org", "sponsored_by": sponsor["id"]},
		)
	).json()
	await _attend(api_client, "pipeliner", pipeliner["id"], ["2024-05-07", "2024-05-14", "2024-05-21"])

	guest = (await api_client.post("/api/guests", json={"full_name": "Gil Guest"})).json()
	invalid = await api_client.post(
		"/api/charity-events",
		json={"event_name": "Soup kitchen", "event_date": "2024-05-25", "participant_ids": [guest["id"]]},
	)
	assert invalid.status_code == 422
	assert invalid.json()["participant_ids"] == [guest["id"]]

	charity = await api_client.post(
		"/api/charity-events",
		json={"event_name": "Soup kitchen", "event_date": "2024-05-25", "participant_ids": [pipeliner["id"]]},
	)
	assert charity.status_code == 201

	eligibility = await api_client.get(f"/api/pipeliners/{pipeliner['id']}/eligibility")
	assert eligibility.json()["eligible"] is True
	assert eligibility.json()["progress"]["meeting_progress"] == 100.0

	member = await api_client.post(
		f"/api/pipeliners/{pipeliner['id']}/promote",
		json={"member_number": "RT-099", "join_date": "2024-06-01"},
	)
	assert member.status_code == 201, member.text
	assert member.json()["member_number"] == "RT-099"
	assert member.json()["status"] == "active"

	refreshed = await api_client.get(f"/api/pipeliners/{pipeliner['id']}")
	assert refreshed.json()["status"] == "became_member"

	again = await api_client.post(
		f"/api/pipeliners/{pipeliner['id']}/promote", json={"member_number": "RT-100"}
	)
	assert again.status_code == 409


@pytest.mark.asyncio
async def test_duplicate_member_number(api_client) -> None:
	await _create_member(api_client)
	resp = await api_client.post(
		"/api/members",
		json={"full_name": "Other", "email": "other@example.org", "member_number": "RT-001", "join_date": "2021-01-01"},
	)
	assert resp.status_code == 409
	assert resp.json()["code"] == "member_number_exists"


@pytest.mark.asyncio
async def test_reports(api_client) -> None:
	sponsor = await _create_member(api_client)
	await _attend(api_client, "member", sponsor["id"], ["2024-05-07"])

	monthly = await api_client.get("/api/reports/monthly", params={"month": "2024-05"})
	assert monthly.status_code == 200
	assert monthly.json()["month_name"] == "May"
	assert monthly.json()["active_members"] == 1

	invalid = await api_client.get("/api/reports/monthly", params={"month": "May"})
	assert invalid.status_code == 422
	assert invalid.json()["code"] == "invalid_month"

	members = await api_client.get("/api/reports/members")
	assert members.json()[0]["attendance_rate"] == 100.0


@pytest.mark.asyncio
async def test_recompute_requires_admin(api_client) -> None:
	denied = await api_client.post("/api/reports/recompute")
	assert denied.status_code == 403

	allowed = await api_client.post("/api/reports/recompute", headers=ADMIN)
	assert allowed.status_code == 200
	assert allowed.json() == {"guests": 0, "pipeliners": 0}


@pytest.mark.asyncio
async def test_schema_validation_payload(api_client) -> None:
	resp = await api_client.post("/api/meetings", json={"meeting_type": "business"})
	assert resp.status_code == 422
	body = resp.json()
	assert body["detail"] == "validation_error"
	assert body["request_id"]


@pytest.mark.asyncio
async def test_org_settings_endpoints(api_client) -> None:
	denied = await api_client.patch("/api/settings", json={"attendance_good_threshold": 90})
	assert denied.status_code == 403

	updated = await api_client.patch(
		"/api/settings",
		json={"attendance_good_threshold": 90, "email_notifications": False, "default_meeting_location": "Harbour Hotel"},
		headers=ADMIN,
	)
	assert updated.status_code == 200, updated.text
	assert updated.json()["attendance_good_threshold"] == 90.0
	assert updated.json()["email_notifications"] is False

	fetched = await api_client.get("/api/settings")
	assert fetched.json()["default_meeting_location"] == "Harbour Hotel"

	meeting = await api_client.post("/api/meetings", json={"meeting_date": "2024-09-03"})
	assert meeting.json()["location"] == "Harbour Hotel"

	bad_order = await api_client.patch("/api/settings", json={"attendance_warning_threshold": 95}, headers=ADMIN)
	assert bad_order.status_code == 422
	assert bad_order.json()["code"] == "threshold_order"

	stats = await api_client.get("/api/settings/stats")
	assert stats.status_code == 200
	assert stats.json()["meetings"] == 1
	assert stats.json()["members"] == 0
