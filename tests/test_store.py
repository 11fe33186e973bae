"""
Test snapshot persistence against SQLite and in memory.
"""
from datetime import timedelta

import pytest

from campus_events.database import create_database_engine, create_session_factory, create_tables
from campus_events.domain.records import Snapshot, UserProfile
from campus_events.services.event_scheduler import EventScheduler
from campus_events.store import InMemoryEventStore, SqlEventStore, dump_snapshot, load_snapshot
from campus_events.utils.exceptions import OptimisticLockError
from tests.conftest import NOW


@pytest.fixture
async def sql_store(tmp_path):
    engine = create_database_engine(database_url=f"sqlite+aiosqlite:///{tmp_path / 'events.db'}")
    await create_tables(engine)
    yield SqlEventStore(create_session_factory(engine))
    await engine.dispose()


class TestSqlEventStore:
    """Test the JSON row store."""

    async def test_empty_store_loads_version_zero(self, sql_store):
        snapshot = await sql_store.load()

        assert snapshot.version == 0
        assert snapshot.events == []

    async def test_round_trip_preserves_records(self, sql_store, event_factory):
        event = event_factory(resources=["projector"])
        event.emitted_markers.add("reminder:60")
        snapshot = Snapshot(users=[UserProfile(user_id="alice", name="Alice")], events=[event])

        saved = await sql_store.save(snapshot)
        loaded = await sql_store.load()

        assert saved.version == 1
        assert loaded.version == 1
        assert loaded.events[0].id == event.id
        assert loaded.events[0].start == event.start
        assert loaded.events[0].emitted_markers == {"reminder:60"}
        assert loaded.users[0].display_name == "Alice"

    async def test_stale_save_is_rejected(self, sql_store):
        await sql_store.save(Snapshot())
        first = await sql_store.load()
        second = await sql_store.load()

        await sql_store.save(first)

        with pytest.raises(OptimisticLockError):
            await sql_store.save(second)
        assert (await sql_store.load()).version == 2

    async def test_concurrent_first_insert_is_rejected(self, sql_store):
        await sql_store.save(Snapshot())

        with pytest.raises(OptimisticLockError):
            await sql_store.save(Snapshot())

    async def test_scheduler_over_sql_store(self, sql_store, clock):
        scheduler = EventScheduler(sql_store, clock=clock)
        await scheduler.register_user("org", "Org")
        await scheduler.register_user("alice", "Alice")

        event = await scheduler.create_event(
            title="Robotics Demo",
            venue="Hall A",
            category="Tech",
            start=NOW + timedelta(days=1),
            duration_minutes=60,
            capacity=2,
            creator_id="org",
        )
        booking = await scheduler.book(event.id, "alice")

        assert booking.seat == 1
        stored = (await scheduler.get_event(event.id)).event
        assert stored.taken == 1
        assert [n.metadata["type"] for n in await scheduler.list_notifications("alice")] == [
            "booking", "new_event"
        ]
        assert (await sql_store.load()).version == 4


class TestInMemoryEventStore:
    """Test the process-local store."""

    async def test_initial_snapshot_starts_at_version_one(self, seeded_snapshot):
        store = InMemoryEventStore(seeded_snapshot)

        loaded = await store.load()

        assert store.version == 1
        assert loaded.version == 1
        assert [u.user_id for u in loaded.users][:2] == ["org", "alice"]

    async def test_loads_are_independent_copies(self, seeded_snapshot):
        store = InMemoryEventStore(seeded_snapshot)

        first = await store.load()
        first.users.clear()

        assert len((await store.load()).users) == len(seeded_snapshot.users)

    async def test_stale_save_is_rejected(self):
        store = InMemoryEventStore()
        first = await store.load()
        second = await store.load()

        await store.save(first)

        with pytest.raises(OptimisticLockError):
            await store.save(second)
        assert store.version == 1


class TestSerialization:
    """Test the snapshot payload helpers."""

    def test_payload_omits_version(self, event_factory):
        snapshot = Snapshot(events=[event_factory()], version=4)

        payload = dump_snapshot(snapshot)

        assert "version" not in payload
        assert payload["events"][0]["taken"] == 0
        assert load_snapshot(payload, 7).version == 7
