from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from campus_events.domain.records import Event, Snapshot, UserProfile
from campus_events.main import app
from campus_events.services.event_scheduler import EventScheduler
from campus_events.services.notification_service import NotificationOutbox
from campus_events.store import InMemoryEventStore
from campus_events.utils.retry import RetryConfig

NOW = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
USERS = ["org", "alice", "bob", "carol", "dave", "erin"]


class FrozenClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)

    def set(self, value: datetime) -> None:
        self.current = value


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def outbox(clock) -> NotificationOutbox:
    return NotificationOutbox(clock)


@pytest.fixture
def event_factory():
    """Build events starting tomorrow at 10:00 unless told otherwise."""
    def build(**overrides) -> Event:
        fields = {
            "title": "Robotics Demo",
            "venue": "Hall A",
            "category": "Tech",
            "start": NOW + timedelta(days=1, hours=1),
            "duration_minutes": 60,
            "capacity": 10,
            "creator_id": "org",
        }
        fields.update(overrides)
        return Event(**fields)
    return build


@pytest.fixture
def seeded_snapshot() -> Snapshot:
    return Snapshot(users=[UserProfile(user_id=u, name=u.title(), surname="Test") for u in USERS])


@pytest.fixture
def store(seeded_snapshot) -> InMemoryEventStore:
    return InMemoryEventStore(seeded_snapshot)


@pytest.fixture
def scheduler(store, clock) -> EventScheduler:
    return EventScheduler(
        store,
        clock=clock,
        retry_config=RetryConfig(max_attempts=3, base_delay=0, jitter=False),
    )


@pytest.fixture
def client(scheduler):
    """Test client bound to an in-memory scheduler; the lifespan keeps it."""
    app.state.scheduler = scheduler
    with TestClient(app) as test_client:
        yield test_client
    app.state.scheduler = None
