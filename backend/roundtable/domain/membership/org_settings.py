"""Organisation settings stored in ``app_settings``.

Each setting is one keyed row. A stored row wins; keys without a row fall back
to the environment values in ``roundtable.settings``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from roundtable.domain.membership.exceptions import ValidationError
from roundtable.domain.membership.models import AppSetting
from roundtable.domain.membership.repository import MembershipRepository, MembershipSession
from roundtable.obs import metrics
from roundtable.settings import settings

LOGGER = logging.getLogger(__name__)

GOOD_THRESHOLD_KEY = "attendance_good_threshold"
WARNING_THRESHOLD_KEY = "attendance_warning_threshold"
EMAIL_NOTIFICATIONS_KEY = "notifications_email_enabled"
DEFAULT_LOCATION_KEY = "default_meeting_location"

SETTING_KEYS = (GOOD_THRESHOLD_KEY, WARNING_THRESHOLD_KEY, EMAIL_NOTIFICATIONS_KEY, DEFAULT_LOCATION_KEY)
_THRESHOLD_KEYS = (GOOD_THRESHOLD_KEY, WARNING_THRESHOLD_KEY)


@dataclass(slots=True, frozen=True)
class OrgSettings:
	attendance_good_threshold: float
	attendance_warning_threshold: float
	email_notifications: bool
	default_meeting_location: Optional[str]


def resolve(stored: Mapping[str, AppSetting]) -> OrgSettings:
	def _number(key: str, fallback: float) -> float:
		row = stored.get(key)
		return float(row.value) if row is not None and row.value is not None else fallback

	email_row = stored.get(EMAIL_NOTIFICATIONS_KEY)
	if email_row is not None and email_row.value is not None:
		email_notifications = email_row.value >= 1
	else:
		email_notifications = settings.notifications_email_enabled

	location_row = stored.get(DEFAULT_LOCATION_KEY)
	location = location_row.text_value if location_row is not None else settings.default_meeting_location

	return OrgSettings(
		attendance_good_threshold=_number(GOOD_THRESHOLD_KEY, settings.attendance_good_threshold),
		attendance_warning_threshold=_number(WARNING_THRESHOLD_KEY, settings.attendance_warning_threshold),
		email_notifications=email_notifications,
		# an empty stored location clears the environment default
		default_meeting_location=(location or "").strip() or None,
	)


async def load_org_settings(session: MembershipSession) -> OrgSettings:
	return resolve(await session.get_app_settings(SETTING_KEYS))


def _threshold(key: str, value: Any) -> int:
	if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
		raise ValidationError(f"{key} must be a whole number.", code="invalid_threshold")
	if not 0 <= value <= 100:
		raise ValidationError(f"{key} must be between 0 and 100.", code="invalid_threshold")
	return int(value)


class OrgSettingsService:
	def __init__(self, repository: MembershipRepository) -> None:
		self._repo = repository

	async def get_settings(self) -> OrgSettings:
		async with self._repo.transaction() as session:
			return await load_org_settings(session)

	async def update_settings(self, changes: Mapping[str, Any]) -> OrgSettings:
		"""Upsert the given keys and return the resolved settings.

		Thresholds are whole percentages; the warning band may not sit above
		the good band once the change is applied.
		"""
		unknown = set(changes) - set(SETTING_KEYS)
		if unknown:
			raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}.", code="unknown_setting")

		entries: List[AppSetting] = []
		thresholds: Dict[str, int] = {}
		for key in _THRESHOLD_KEYS:
			if key in changes:
				thresholds[key] = _threshold(key, changes[key])
				entries.append(AppSetting(key=key, value=thresholds[key]))
		if EMAIL_NOTIFICATIONS_KEY in changes:
			entries.append(AppSetting(key=EMAIL_NOTIFICATIONS_KEY, value=1 if changes[EMAIL_NOTIFICATIONS_KEY] else 0))
		if DEFAULT_LOCATION_KEY in changes:
			entries.append(
				AppSetting(key=DEFAULT_LOCATION_KEY, text_value=(changes[DEFAULT_LOCATION_KEY] or "").strip())
			)

		async with self._repo.transaction() as session:
			current = await load_org_settings(session)
			good = thresholds.get(GOOD_THRESHOLD_KEY, current.attendance_good_threshold)
			warning = thresholds.get(WARNING_THRESHOLD_KEY, current.attendance_warning_threshold)
			if warning > good:
				raise ValidationError(
					"Warning threshold cannot be above the good threshold.", code="threshold_order"
				)
			if entries:
				await session.upsert_app_settings(entries)
			updated = await load_org_settings(session)
		metrics.inc_ledger_write("app_settings", "update")
		LOGGER.info("org_settings_updated", extra={"keys": sorted(entry.key for entry in entries)})
		return updated

	async def data_stats(self) -> Dict[str, int]:
		async with self._repo.transaction() as session:
			return dict(await session.count_rows())
