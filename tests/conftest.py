"""Shared fixtures for Lead Engine tests."""

import os
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

# Ensure tests never pick up a developer database
os.environ.setdefault("DATABASE_URL", "")

from config.settings import Settings
from database.cache import TTLCache
from database.repositories import ClientRepository, DiscoveryRepository, LeadRepository, ProjectRepository
from database.tabular_store import InMemoryTabularStore
from lead_scoring.models import Lead, LeadInput
from lead_scoring.scoring_model import LeadScorer


class FlakyStore(InMemoryTabularStore):
    """In-memory store whose reads or writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False

    async def read(self, table):
        if self.fail_reads:
            raise ConnectionError("store unreachable")
        return await super().read(table)

    async def write(self, table, rows):
        if self.fail_writes:
            raise ConnectionError("store unreachable")
        await super().write(table, rows)

    async def append(self, table, rows):
        if self.fail_writes:
            raise ConnectionError("store unreachable")
        await super().append(table, rows)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lead_repository(store, clock):
    return LeadRepository(store, scorer=LeadScorer(), cache=TTLCache(ttl_seconds=300, clock=clock))


@pytest.fixture
def discovery_repository(store):
    return DiscoveryRepository(store)


@pytest.fixture
def client_repository(store):
    return ClientRepository(store)


@pytest.fixture
def project_repository(store):
    return ProjectRepository(store)


@pytest.fixture
def lead_form():
    """A valid intake form submission."""
    return {
        "name": "Priya Sharma",
        "email": "priya@acme.io",
        "company": "Acme Retail",
        "company_size": "medium_business",
        "project_type": "ecommerce",
        "project_description": "Rebuild our online store with a new checkout flow",
        "budget_range": "50k_100k",
        "timeline": "1_month",
        "primary_challenge": "Cart abandonment is too high",
        "industry": "E-commerce",
        "source": "referral",
    }


def make_lead(**overrides) -> Lead:
    """Build a lead directly, bypassing validation."""
    data = {
        "name": "Test Lead",
        "email": "lead@example.com",
        "company": "Example Co",
        "company_size": "small_business",
        "project_type": "web_app",
        "project_description": "A project description",
        "budget_range": "25k_50k",
        "timeline": "2_3_months",
        "primary_challenge": "Slow growth",
    }
    created_at = overrides.pop("created_at", datetime(2026, 1, 15, tzinfo=timezone.utc))
    lead_id = overrides.pop("id", None)
    extra = {k: overrides.pop(k) for k in list(overrides) if k not in LeadInput.__dataclass_fields__}
    data.update(overrides)
    lead = Lead.from_input(LeadInput.from_dict(data), lead_id=lead_id, now=created_at)
    return lead.with_changes(extra) if extra else lead


@pytest.fixture
def lead_factory():
    return make_lead


@pytest.fixture
def settings():
    return Settings(database_url=None, log_level="WARNING")


@pytest.fixture
def client(settings):
    """Create a FastAPI test client with a fresh in-memory store."""
    from api.main import create_app
    from api.services import Services

    app = create_app(Services(settings, store=InMemoryTabularStore()))
    with TestClient(app) as test_client:
        yield test_client
