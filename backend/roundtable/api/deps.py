"""Dependency providers for membership services.

Routers depend on these functions; tests override them through
``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from roundtable.domain.membership.aggregates import AggregateMaintainer
from roundtable.domain.membership.ledger import LedgerService
from roundtable.domain.membership.memory_repo import InMemoryMembershipRepository
from roundtable.domain.membership.org_settings import OrgSettingsService
from roundtable.domain.membership.postgres_repo import PostgresMembershipRepository
from roundtable.domain.membership.promotion import PromotionOrchestrator
from roundtable.domain.membership.reporting import ReportingAggregator
from roundtable.domain.membership.repository import MembershipRepository
from roundtable.domain.membership.roster import RosterService
from roundtable.settings import settings

_repository: Optional[MembershipRepository] = None
_maintainer = AggregateMaintainer()


def get_repository() -> MembershipRepository:
	global _repository
	if _repository is None:
		if settings.storage_backend == "memory":
			_repository = InMemoryMembershipRepository()
		else:
			_repository = PostgresMembershipRepository()
	return _repository


def set_repository(repository: Optional[MembershipRepository]) -> None:
	global _repository
	_repository = repository


def get_ledger_service(repository: MembershipRepository = Depends(get_repository)) -> LedgerService:
	return LedgerService(repository, _maintainer)


def get_roster_service(repository: MembershipRepository = Depends(get_repository)) -> RosterService:
	return RosterService(repository, _maintainer)


def get_promotion_orchestrator(repository: MembershipRepository = Depends(get_repository)) -> PromotionOrchestrator:
	return PromotionOrchestrator(repository, _maintainer)


def get_reporting_aggregator(repository: MembershipRepository = Depends(get_repository)) -> ReportingAggregator:
	return ReportingAggregator(repository)


def get_org_settings_service(repository: MembershipRepository = Depends(get_repository)) -> OrgSettingsService:
	return OrgSettingsService(repository)


def _resolve_token(x_admin_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
	if x_admin_token:
		return x_admin_token
	if authorization and authorization.lower().startswith("bearer "):
		return authorization.split(" ", 1)[1]
	return None


def is_admin(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> bool:
	token = settings.admin_token
	if not token:
		return False
	return _resolve_token(x_admin_token, authorization) == token


def require_admin(admin: bool = Depends(is_admin)) -> None:
	if not settings.admin_token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	if not admin:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")
