"""Membership progression: ledgers, derived counters, eligibility and promotions."""

from roundtable.domain.membership.aggregates import AggregateMaintainer
from roundtable.domain.membership.ledger import LedgerService
from roundtable.domain.membership.memory_repo import InMemoryMembershipRepository
from roundtable.domain.membership.org_settings import OrgSettingsService
from roundtable.domain.membership.postgres_repo import PostgresMembershipRepository
from roundtable.domain.membership.promotion import PromotionOrchestrator
from roundtable.domain.membership.reporting import ReportingAggregator
from roundtable.domain.membership.roster import RosterService

__all__ = [
	"AggregateMaintainer",
	"InMemoryMembershipRepository",
	"LedgerService",
	"OrgSettingsService",
	"PostgresMembershipRepository",
	"PromotionOrchestrator",
	"ReportingAggregator",
	"RosterService",
]
