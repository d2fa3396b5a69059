"""Custom exceptions for membership services."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class MembershipError(Exception):
	"""Base class for membership related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	code: str = "membership_error"
	detail: str = "Membership operation failed."

	def __init__(self, detail: str | None = None, *, code: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail
		if code:
			self.code = code

	def extra(self) -> Dict[str, Any]:
		return {}


class ValidationError(MembershipError):
	"""Raised for input that schema validation cannot catch."""

	status_code = _HTTP_422
	code = "validation_error"
	detail = "Invalid input."


class MissingRequiredField(ValidationError):
	code = "missing_required_field"
	detail = "A required field is missing."


class InvalidSubject(ValidationError):
	"""Attendance references a subject that does not exist."""

	code = "invalid_subject"
	detail = "Attendance subject does not exist."


class InvalidParticipant(ValidationError):
	"""Charity participants must be existing members or pipeliners."""

	code = "invalid_participant"
	detail = "Charity participant is not a member or pipeliner."

	def __init__(self, participant_ids: Iterable[Any], detail: str | None = None) -> None:
		super().__init__(detail)
		self.participant_ids: List[str] = [str(value) for value in participant_ids]

	def extra(self) -> Dict[str, Any]:
		return {"participant_ids": self.participant_ids}


class NotFoundError(MembershipError):
	status_code = status.HTTP_404_NOT_FOUND
	code = "not_found"
	detail = "Resource not found."


class ConflictError(MembershipError):
	status_code = status.HTTP_409_CONFLICT
	code = "conflict"
	detail = "Conflicting state."


class DuplicateIdentifier(ConflictError):
	code = "duplicate_identifier"
	detail = "Identifier already in use."


class DuplicateAttendance(ConflictError):
	code = "attendance_exists"
	detail = "Attendance already recorded for this meeting."


class SubjectAlreadyPromoted(ConflictError):
	code = "already_promoted"
	detail = "Subject has already been promoted."


class EligibilityError(MembershipError):
	status_code = _HTTP_422
	code = "not_eligible"
	detail = "Eligibility requirements not met."


class NotEligible(EligibilityError):
	"""Gate failed; carries the outstanding requirements."""

	def __init__(self, detail: str | None = None, *, missing: Iterable[str] = ()) -> None:
		super().__init__(detail)
		self.missing: List[str] = list(missing)

	def extra(self) -> Dict[str, Any]:
		return {"missing": self.missing}


class TransientStoreError(MembershipError):
	"""Serialization failure, deadlock or lost connection; retry the operation."""

	status_code = status.HTTP_503_SERVICE_UNAVAILABLE
	code = "transient_store_failure"
	detail = "Storage temporarily unavailable, retry the request."


class ConsistencyViolation(MembershipError):
	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	code = "consistency_violation"
	detail = "Derived counters diverged from the ledger."
