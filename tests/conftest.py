"""
Pytest configuration and fixtures for cheerboard tests.

Provides shared fixtures for:
- A controllable clock
- In-memory document store, store gateway and cache
- Service instances wired the way the API wires them
- Sample data factories and seeding helpers
- A TestClient over an app using the same store and cache
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Keep test runs independent of a developer's environment
os.environ.pop("CHEERBOARD_STORE_URL", None)
os.environ.setdefault("CHEERBOARD_LOG_LEVEL", "WARNING")

from cheerboard.config.settings import AppSettings
from cheerboard.middleware.auth import UserContext, UserRole
from cheerboard.schemas.common import ReviewTarget
from cheerboard.schemas.event import EventCreate
from cheerboard.schemas.performer import PerformerCreate
from cheerboard.services.crossref_service import CrossReferenceMaintainer
from cheerboard.services.event_service import EventService
from cheerboard.services.favorite_service import FavoriteService
from cheerboard.services.moderation import ModerationEngine
from cheerboard.services.performer_service import PerformerService
from cheerboard.services.submission_service import SubmissionService
from cheerboard.store import InMemoryDocumentStore, StoreGateway
from cheerboard.utils.cache import MemoryCache


NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

ADMIN_HEADERS = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
ALICE_HEADERS = {"X-User-Id": "alice"}
BOB_HEADERS = {"X-User-Id": "bob"}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ============================================================================
# Infrastructure Fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Default settings, ignoring any local .env file."""
    return AppSettings(_env_file=None)


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def gateway(memory_store):
    """Gateway without backoff delays."""
    return StoreGateway(memory_store, timeout_seconds=1.0, max_attempts=3, retry_delay_seconds=0)


@pytest.fixture
def cache(clock):
    return MemoryCache(clock=clock)


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def crossref(gateway, cache, clock):
    return CrossReferenceMaintainer(gateway, cache, clock=clock)


@pytest.fixture
def moderation(gateway, cache, crossref, clock):
    return ModerationEngine(gateway, cache, crossref, clock=clock)


@pytest.fixture
def performer_service(gateway, cache, settings, clock):
    return PerformerService(gateway, cache, settings=settings, clock=clock)


@pytest.fixture
def favorite_service(gateway, cache, settings, clock):
    return FavoriteService(gateway, cache, settings=settings, clock=clock)


@pytest.fixture
def event_service(gateway, cache, crossref, favorite_service, settings, clock):
    return EventService(gateway, cache, crossref, favorite_service, settings=settings, clock=clock)


@pytest.fixture
def submission_service(gateway):
    return SubmissionService(gateway)


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def admin():
    return UserContext(user_id="admin-1", role=UserRole.ADMIN)


@pytest.fixture
def alice():
    return UserContext(user_id="alice")


@pytest.fixture
def bob():
    return UserContext(user_id="bob")


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)


@pytest.fixture
def alice_headers():
    return dict(ALICE_HEADERS)


@pytest.fixture
def bob_headers():
    return dict(BOB_HEADERS)


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def sample_event_data(clock):
    """Factory for EventCreate payloads; the default event is active now."""
    def _create(
        performer_ids,
        title="Birthday cafe",
        address="No. 1, Section 1, Taipei",
        lat=25.04,
        lng=121.56,
        starts_in=timedelta(days=-1),
        lasts=timedelta(days=2),
        **overrides,
    ):
        start = clock() + starts_in
        data = {
            "performer_ids": list(performer_ids),
            "title": title,
            "description": "Cup sleeves and photo cards",
            "location": {
                "name": "Cafe Lumi",
                "address": address,
                "coordinates": {"lat": lat, "lng": lng},
            },
            "schedule": {"start": start.isoformat(), "end": (start + lasts).isoformat()},
            "social_media": {"instagram": "cafelumi"},
        }
        data.update(overrides)
        return EventCreate(**data)
    return _create


@pytest.fixture
def create_performer(performer_service, moderation, alice, admin):
    """Submit a performer as alice and optionally review it as admin."""
    async def _create(stage_name="Mina", status=ReviewTarget.APPROVED, user=None, **fields):
        performer = await performer_service.create_performer(
            PerformerCreate(stage_name=stage_name, **fields), user or alice
        )
        if status is None:
            return performer
        return await moderation.review_performer(performer.id, status, admin)
    return _create


@pytest.fixture
def create_event(event_service, moderation, sample_event_data, alice, admin):
    """Submit an event as alice and optionally review it as admin."""
    async def _create(performer_ids, status=ReviewTarget.APPROVED, user=None, **fields):
        event = await event_service.create_event(
            sample_event_data(performer_ids, **fields), user or alice
        )
        if status is None:
            return event
        return await moderation.review_event(event.id, status, admin)
    return _create


# ============================================================================
# HTTP Client
# ============================================================================

@pytest.fixture
def test_client(memory_store, cache, settings, clock):
    """TestClient over an app sharing the test store, cache and clock."""
    from cheerboard.main import create_app

    app = create_app(store=memory_store, cache=cache, settings=settings, clock=clock)
    with TestClient(app) as client:
        yield client
