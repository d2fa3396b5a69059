"""Eligibility rules for guest and pipeliner promotion.

Everything here is pure: callers pass counters read from the ledgers and get
back booleans, progress figures and human readable gaps. The aggregate
maintainer and the promotion orchestrator both call these functions so the
cached flag and the promotion gate can never disagree on the rule itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

MEETING_TARGET = 3
CHARITY_EVENT_TARGET = 1


def guest_eligible_for_pipeliner(present_count: int, charity_event_count: int) -> bool:
	return present_count >= MEETING_TARGET and charity_event_count >= CHARITY_EVENT_TARGET


def pipeliner_eligible_for_membership(business_meetings_count: int, charity_events_count: int) -> bool:
	return business_meetings_count >= MEETING_TARGET and charity_events_count >= CHARITY_EVENT_TARGET


def _plural(count: int, label: str) -> str:
	return f"{count} more {label}" + ("" if count == 1 else "s")


def missing_requirements(meetings: int, charity: int, meeting_label: str = "meeting") -> List[str]:
	"""Return the outstanding requirements, e.g. ``["2 more business meetings"]``."""
	missing: List[str] = []
	meeting_gap = MEETING_TARGET - meetings
	if meeting_gap > 0:
		missing.append(_plural(meeting_gap, meeting_label))
	charity_gap = CHARITY_EVENT_TARGET - charity
	if charity_gap > 0:
		missing.append(_plural(charity_gap, "charity event"))
	return missing


def describe_missing(subject_label: str, missing: List[str]) -> str:
	return f"{subject_label} still needs {' and '.join(missing)} before promotion."


@dataclass(slots=True, frozen=True)
class EligibilityProgress:
	meetings: int
	charity_events: int
	meeting_target: int
	charity_event_target: int
	meeting_progress: float
	charity_event_progress: float
	eligible: bool


def _percent(value: int, target: int) -> float:
	if target <= 0:
		return 100.0
	return round(min(max(value, 0) / target, 1.0) * 100, 2)


def progress(meetings: int, charity: int) -> EligibilityProgress:
	return EligibilityProgress(
		meetings=meetings,
		charity_events=charity,
		meeting_target=MEETING_TARGET,
		charity_event_target=CHARITY_EVENT_TARGET,
		meeting_progress=_percent(meetings, MEETING_TARGET),
		charity_event_progress=_percent(charity, CHARITY_EVENT_TARGET),
		eligible=pipeliner_eligible_for_membership(meetings, charity),
	)


__all__ = [
	"CHARITY_EVENT_TARGET",
	"EligibilityProgress",
	"MEETING_TARGET",
	"describe_missing",
	"guest_eligible_for_pipeliner",
	"missing_requirements",
	"pipeliner_eligible_for_membership",
	"progress",
]
