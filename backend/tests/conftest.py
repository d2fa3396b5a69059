import asyncio
import sys
from datetime import date
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from roundtable.api import deps
from roundtable.domain.membership.aggregates import AggregateMaintainer
from roundtable.domain.membership.ledger import LedgerService
from roundtable.domain.membership.memory_repo import InMemoryMembershipRepository
from roundtable.domain.membership.org_settings import OrgSettingsService
from roundtable.domain.membership.promotion import PromotionOrchestrator
from roundtable.domain.membership.reporting import ReportingAggregator
from roundtable.domain.membership.roster import RosterService
from roundtable.infra import postgres
from roundtable.main import app
from roundtable.settings import settings


# Ensure a selector-based event loop policy on Windows to avoid Proactor issues with async IO
if hasattr(asyncio, "WindowsSelectorEventLoopPolicy"):
	try:
		asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
	except Exception:
		pass


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	original = (settings.environment, settings.admin_token, settings.storage_backend)
	settings.environment = "dev"
	settings.admin_token = "test-admin-token"
	settings.storage_backend = "memory"
	try:
		yield
	finally:
		settings.environment, settings.admin_token, settings.storage_backend = original


@pytest.fixture
def repo() -> InMemoryMembershipRepository:
	return InMemoryMembershipRepository()


@pytest.fixture
def maintainer() -> AggregateMaintainer:
	return AggregateMaintainer()


@pytest.fixture
def ledger(repo, maintainer) -> LedgerService:
	return LedgerService(repo, maintainer)


@pytest.fixture
def roster(repo, maintainer) -> RosterService:
	return RosterService(repo, maintainer)


@pytest.fixture
def orchestrator(repo, maintainer) -> PromotionOrchestrator:
	return PromotionOrchestrator(repo, maintainer)


@pytest.fixture
def org_settings(repo) -> OrgSettingsService:
	return OrgSettingsService(repo)


@pytest.fixture
def reporting(repo) -> ReportingAggregator:
	return ReportingAggregator(repo, good_threshold=80.0, warning_threshold=60.0)


@pytest_asyncio.fixture
async def sponsor(roster):
	return await roster.create_member(
		full_name="Sam Sponsor",
		email="sam@example.org",
		join_date=date(2020, 1, 1),
		member_number="RT-001",
	)


@pytest_asyncio.fixture
async def api_client(repo):
	app.dependency_overrides[deps.get_repository] = lambda: repo
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.dependency_overrides.pop(deps.get_repository, None)
