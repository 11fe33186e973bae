"""
Test the scheduler façade and its unit of work.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from campus_events.domain.records import Snapshot, VolunteerRequest, VolunteerSlot
from campus_events.services.event_scheduler import EventScheduler
from campus_events.store import InMemoryEventStore
from campus_events.utils.exceptions import (
    AuthorizationError,
    BelowBookedError,
    EventFullError,
    EventLiveError,
    EventNotFoundError,
    InvalidCapacityError,
    OptimisticLockError,
    PersistenceError,
    ResourceConflictError,
    RoleTakenError,
    UserNotFoundError,
    ValidationError,
    VenueConflictError,
)
from campus_events.utils.retry import RetryConfig
from tests.conftest import NOW

TOMORROW_TEN = NOW + timedelta(days=1, hours=1)


async def create(scheduler, **overrides):
    fields = {
        "title": "Robotics Demo",
        "venue": "Hall A",
        "category": "Tech",
        "start": TOMORROW_TEN,
        "duration_minutes": 60,
        "capacity": 10,
        "creator_id": "org",
        "resources": [],
    }
    fields.update(overrides)
    return await scheduler.create_event(**fields)


async def messages(scheduler, user_id):
    return [n.message for n in await scheduler.list_notifications(user_id)]


class TestCreateEvent:
    """Test creation rules."""

    async def test_create_broadcasts_to_every_user(self, scheduler):
        event = await create(scheduler)

        assert event.taken == 0
        assert await messages(scheduler, "alice") == ["📢 New Event: Robotics Demo on 2025-03-04"]
        assert (await scheduler.get_event(event.id)).event.title == "Robotics Demo"

    async def test_start_must_be_in_the_future(self, scheduler, clock):
        with pytest.raises(ValidationError):
            await create(scheduler, start=clock.now())
        with pytest.raises(ValidationError):
            await create(scheduler, start=clock.now() - timedelta(days=1))

    async def test_missing_fields_are_rejected(self, scheduler):
        with pytest.raises(ValidationError) as exc_info:
            await create(scheduler, title="")

        assert "title" in exc_info.value.field_errors

    async def test_invalid_capacity(self, scheduler):
        with pytest.raises(InvalidCapacityError):
            await create(scheduler, capacity=0)

    async def test_venue_overlap_is_rejected_and_adjacent_accepted(self, scheduler):
        first = await create(scheduler)

        with pytest.raises(VenueConflictError) as exc_info:
            await create(scheduler, start=TOMORROW_TEN + timedelta(minutes=59))
        assert exc_info.value.details["conflicting_event_id"] == str(first.id)

        second = await create(scheduler, start=first.end)
        assert second.start == first.end

    async def test_same_instant_in_another_offset_is_a_venue_conflict(self, scheduler):
        first = await create(scheduler, start=datetime(2025, 3, 4, 19, 0, tzinfo=timezone.utc))
        shifted = first.start.astimezone(timezone(timedelta(hours=5, minutes=30)))

        with pytest.raises(VenueConflictError) as exc_info:
            await create(scheduler, start=shifted)
        assert exc_info.value.details["conflicting_event_id"] == str(first.id)
        assert first.start.utcoffset() == timedelta(0)

    async def test_resource_conflict_names_the_resource(self, scheduler):
        await create(scheduler, resources=["projector"])

        with pytest.raises(ResourceConflictError) as exc_info:
            await create(scheduler, venue="Hall B", resources=["projector"])

        assert exc_info.value.details["resource"] == "projector"
        assert "'projector'" in exc_info.value.message

    async def test_failed_create_persists_nothing(self, scheduler, store):
        await create(scheduler)
        version = store.version

        with pytest.raises(VenueConflictError):
            await create(scheduler)

        assert store.version == version
        assert len(await scheduler.list_events()) == 1


class TestUpdateEvent:
    """Test edits."""

    async def test_only_creator_can_edit(self, scheduler):
        event = await create(scheduler)

        with pytest.raises(AuthorizationError):
            await scheduler.update_event(event.id, "alice", title="Hijacked")

    async def test_started_event_cannot_be_edited(self, scheduler, clock):
        event = await create(scheduler)
        clock.set(event.start)

        with pytest.raises(EventLiveError):
            await scheduler.update_event(event.id, "org", title="Too late")

    async def test_unknown_event(self, scheduler):
        event = await create(scheduler)
        await scheduler.delete_event(event.id, "org")

        with pytest.raises(EventNotFoundError):
            await scheduler.update_event(event.id, "org", title="Gone")

    async def test_capacity_floor(self, scheduler):
        event = await create(scheduler, capacity=3)
        await scheduler.book(event.id, "alice")
        await scheduler.book(event.id, "bob")

        with pytest.raises(BelowBookedError) as exc_info:
            await scheduler.update_event(event.id, "org", capacity=1)

        assert exc_info.value.details["taken"] == 2

    async def test_capacity_growth_promotes_and_notifies_bookers(self, scheduler):
        event = await create(scheduler, capacity=2)
        await scheduler.book(event.id, "alice")
        await scheduler.book(event.id, "bob")
        for user in ["carol", "dave", "erin"]:
            await scheduler.join_waitlist(event.id, user)

        updated = await scheduler.update_event(event.id, "org", capacity=4, title="Robotics Demo XL")

        assert [(b.user_id, b.seat) for b in updated.bookings] == [
            ("alice", 1), ("bob", 2), ("carol", 3), ("dave", 4)
        ]
        assert [w.user_id for w in updated.waitlist] == ["erin"]
        carol_inbox = await messages(scheduler, "carol")
        assert carol_inbox[0] == "✏️ Event Updated: Details for 'Robotics Demo XL' have changed."
        assert "increased capacity. Your seat: 3" in carol_inbox[1]
        assert not any("Event Updated" in m for m in await messages(scheduler, "erin"))

    async def test_update_checks_other_events_only(self, scheduler):
        first = await create(scheduler)
        second = await create(scheduler, start=first.end)

        moved = await scheduler.update_event(first.id, "org", start=TOMORROW_TEN + timedelta(minutes=-30))
        assert moved.start == TOMORROW_TEN - timedelta(minutes=30)

        with pytest.raises(VenueConflictError):
            await scheduler.update_event(second.id, "org", start=TOMORROW_TEN)

    async def test_update_rejects_past_start(self, scheduler, clock):
        event = await create(scheduler)

        with pytest.raises(ValidationError):
            await scheduler.update_event(event.id, "org", start=clock.now() - timedelta(minutes=1))


class TestDeleteEvent:
    """Test deletion."""

    async def test_delete_notifies_bookers_and_drops_media(self, scheduler):
        event = await create(scheduler)
        await scheduler.book(event.id, "alice")
        await scheduler.attach_media(event.id, "org", "Poster", "https://cdn.example/poster.png")

        await scheduler.delete_event(event.id, "org")

        assert (await messages(scheduler, "alice"))[0] == "❌ Event Cancelled: 'Robotics Demo' has been cancelled."
        assert await scheduler.list_events() == []
        snapshot = await scheduler.store.load()
        assert snapshot.media == []

    async def test_only_creator_can_delete(self, scheduler):
        event = await create(scheduler)

        with pytest.raises(AuthorizationError):
            await scheduler.delete_event(event.id, "alice")

    async def test_started_event_cannot_be_deleted(self, scheduler, clock):
        event = await create(scheduler)
        clock.set(event.start + timedelta(minutes=5))

        with pytest.raises(EventLiveError):
            await scheduler.delete_event(event.id, "org")


class TestSeatOperations:
    """Test the ledger through the unit of work."""

    async def test_unknown_user_cannot_book(self, scheduler):
        event = await create(scheduler)

        with pytest.raises(UserNotFoundError):
            await scheduler.book(event.id, "mallory")

    async def test_full_event_still_records_notification(self, scheduler):
        event = await create(scheduler, capacity=1)
        await scheduler.book(event.id, "alice")

        with pytest.raises(EventFullError):
            await scheduler.book(event.id, "bob")

        assert await messages(scheduler, "bob") == [
            "⚠️ Event Robotics Demo is full.",
            "📢 New Event: Robotics Demo on 2025-03-04",
        ]
        assert (await scheduler.get_event(event.id)).event.taken == 1

    async def test_cancellation_promotes_fifo(self, scheduler):
        event = await create(scheduler, capacity=1)
        await scheduler.book(event.id, "carol")
        await scheduler.join_waitlist(event.id, "alice")
        await scheduler.join_waitlist(event.id, "bob")

        promoted = await scheduler.cancel_booking(event.id, "carol")

        assert (promoted.user_id, promoted.seat) == ("alice", 1)
        waitlist = await scheduler.get_waitlist(event.id, "org")
        assert [(w["position"], w["user_id"], w["display_name"]) for w in waitlist] == [(1, "bob", "Bob Test")]

    async def test_admin_cancel(self, scheduler):
        event = await create(scheduler)
        await scheduler.book(event.id, "alice")

        with pytest.raises(AuthorizationError):
            await scheduler.admin_cancel_booking(event.id, "alice", "bob")
        await scheduler.admin_cancel_booking(event.id, "alice", "org")

        assert (await messages(scheduler, "alice"))[0] == (
            "❌ Your ticket for 'Robotics Demo' was cancelled by the organizer."
        )

    async def test_list_tickets(self, scheduler):
        first = await create(scheduler, capacity=1)
        second = await create(scheduler, venue="Hall B")
        await scheduler.book(first.id, "bob")
        await scheduler.join_waitlist(first.id, "alice")
        await scheduler.book(second.id, "alice")

        tickets = await scheduler.list_tickets("alice")

        assert [(t["event_id"], t["status"], t["seat"], t["waitlist_position"]) for t in tickets] == [
            (first.id, "waitlisted", None, 1),
            (second.id, "booked", 1, None),
        ]

    async def test_waitlist_view_is_organizer_only(self, scheduler):
        event = await create(scheduler)

        with pytest.raises(AuthorizationError):
            await scheduler.get_waitlist(event.id, "alice")

    async def test_concurrent_bookings_never_oversell(self, scheduler):
        event = await create(scheduler, capacity=3)
        users = ["alice", "bob", "carol", "dave", "erin"]

        results = await asyncio.gather(
            *(scheduler.book(event.id, user) for user in users),
            return_exceptions=True,
        )

        booked = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(booked) == 3
        assert all(isinstance(f, EventFullError) for f in failures)
        stored = (await scheduler.get_event(event.id)).event
        assert sorted(b.seat for b in stored.bookings) == [1, 2, 3]


class TestVolunteerOperations:
    """Test the roster through the unit of work."""

    async def test_invite_accept_and_list(self, scheduler):
        event = await create(scheduler)
        await scheduler.request_volunteer(event.id, "org", "alice", "usher")

        slot = await scheduler.respond_to_volunteer_request(event.id, "alice", "accept")

        assert slot.volunteer_id == "V01"
        listing = await scheduler.list_volunteers(event.id, "org")
        assert listing[0]["volunteer_id"] == "V01"
        assert (await messages(scheduler, "org"))[0] == "✅ alice accepted volunteer role 'usher' for 'Robotics Demo'."

    async def test_unknown_volunteer_user(self, scheduler):
        event = await create(scheduler)

        with pytest.raises(UserNotFoundError):
            await scheduler.request_volunteer(event.id, "org", "mallory", "usher")

    async def test_role_taken_on_accept_is_persisted(self, clock, event_factory, seeded_snapshot):
        event = event_factory(
            volunteers=[VolunteerSlot(user_id="carol", role="usher", volunteer_id="V01")],
            volunteer_requests=[VolunteerRequest(user_id="alice", role="usher", requested_at=clock.now())],
        )
        seeded_snapshot.events.append(event)
        legacy = EventScheduler(InMemoryEventStore(seeded_snapshot), clock=clock)

        with pytest.raises(RoleTakenError):
            await legacy.respond_to_volunteer_request(event.id, "alice", "accept")

        stored = (await legacy.get_event(event.id)).event
        assert stored.volunteer_requests[0].status.value == "rejected"

    async def test_remove_volunteer(self, scheduler):
        event = await create(scheduler)
        for user, role in [("alice", "usher"), ("bob", "runner")]:
            await scheduler.request_volunteer(event.id, "org", user, role)
            await scheduler.respond_to_volunteer_request(event.id, user, "accept")

        await scheduler.remove_volunteer(event.id, "org", "alice")

        stored = (await scheduler.get_event(event.id)).event
        assert [(v.user_id, v.volunteer_id) for v in stored.volunteers] == [("bob", "V01")]


class TestSweep:
    """Test live broadcasts and countdown reminders."""

    async def test_reminders_fire_once_per_threshold(self, scheduler, clock):
        event = await create(scheduler)
        await scheduler.book(event.id, "alice")

        clock.set(event.start - timedelta(minutes=50))
        assert await scheduler.sweep() == 1
        assert await scheduler.sweep() == 0
        await scheduler.list_events()

        clock.set(event.start - timedelta(minutes=40))
        assert await scheduler.sweep() == 1

        reminders = [m for m in await messages(scheduler, "alice") if m.startswith("⏳")]
        assert reminders == [
            "⏳ Reminder: 'Robotics Demo' starts in about 45 minutes!",
            "⏳ Reminder: 'Robotics Demo' starts in about 60 minutes!",
        ]
        assert not any(m.startswith("⏳") for m in await messages(scheduler, "bob"))

    async def test_late_first_sweep_fires_every_passed_threshold(self, scheduler, clock):
        event = await create(scheduler)
        await scheduler.book(event.id, "alice")
        clock.set(event.start - timedelta(minutes=5))

        assert await scheduler.sweep() == 4
        assert await scheduler.sweep() == 0

    async def test_live_broadcast_fires_once(self, scheduler, clock):
        event = await create(scheduler)

        clock.set(event.start)
        await scheduler.list_events()
        clock.advance(minutes=30)
        await scheduler.list_events()

        live = [m for m in await messages(scheduler, "bob") if m.startswith("🔥")]
        assert live == ["🔥 Event Live: 'Robotics Demo' is now live!"]

    async def test_moving_the_start_rearms_reminders(self, scheduler, clock):
        event = await create(scheduler)
        await scheduler.book(event.id, "alice")

        clock.set(event.start - timedelta(minutes=30))
        assert await scheduler.sweep() == 2

        await scheduler.update_event(event.id, "org", start=event.start + timedelta(days=1))
        clock.set(event.start + timedelta(days=1) - timedelta(minutes=50))
        assert await scheduler.sweep() == 1

        reminders = [m for m in await messages(scheduler, "alice") if m.startswith("⏳")]
        assert reminders.count("⏳ Reminder: 'Robotics Demo' starts in about 60 minutes!") == 2

    async def test_unchanged_start_keeps_fired_reminders(self, scheduler, clock):
        event = await create(scheduler)
        await scheduler.book(event.id, "alice")

        clock.set(event.start - timedelta(minutes=50))
        assert await scheduler.sweep() == 1

        await scheduler.update_event(event.id, "org", title="Robotics Demo II")
        assert await scheduler.sweep() == 0

    async def test_nothing_due_saves_nothing(self, scheduler, store):
        await create(scheduler)
        version = store.version

        assert await scheduler.sweep() == 0
        await scheduler.list_events()

        assert store.version == version


class TestUsersMediaNotifications:
    """Test the supporting operations."""

    async def test_register_is_an_upsert(self, scheduler):
        await scheduler.register_user("frank", "Frank")
        profile = await scheduler.register_user("frank", "Franklin", surname="Moss")

        assert profile.display_name == "Franklin Moss"
        assert (await scheduler.get_user("frank")).name == "Franklin"

    async def test_get_unknown_user(self, scheduler):
        with pytest.raises(UserNotFoundError):
            await scheduler.get_user("nobody")

    async def test_media_is_creator_only(self, scheduler):
        event = await create(scheduler)

        with pytest.raises(AuthorizationError):
            await scheduler.attach_media(event.id, "alice", "Poster", "https://cdn.example/p.png")
        media = await scheduler.attach_media(event.id, "org", "Teaser", "https://cdn.example/t.mp4", "video")
        with pytest.raises(AuthorizationError):
            await scheduler.remove_media(media.id, "alice")

        await scheduler.remove_media(media.id, "org")
        assert (await scheduler.get_event(event.id)).media == []

    async def test_mark_notifications_read(self, scheduler):
        await create(scheduler)

        assert await scheduler.mark_notifications_read("alice") == 1
        assert await scheduler.mark_notifications_read("alice") == 0
        assert await scheduler.list_notifications("alice", unread_only=True) == []


class FlakyStore(InMemoryEventStore):
    """Loses the first ``failures`` saves to a concurrent writer."""

    def __init__(self, snapshot: Snapshot, failures: int):
        super().__init__(snapshot)
        self.failures = failures
        self.saves = 0

    async def save(self, snapshot):
        self.saves += 1
        if self.failures:
            self.failures -= 1
            raise OptimisticLockError("snapshot", "memory")
        return await super().save(snapshot)


class BrokenStore(InMemoryEventStore):
    async def save(self, snapshot):
        raise PersistenceError("disk full")


class TestUnitOfWork:
    """Test retries and failure handling around saves."""

    async def test_lost_race_is_retried(self, seeded_snapshot, clock):
        store = FlakyStore(seeded_snapshot, failures=2)
        scheduler = EventScheduler(store, clock=clock, retry_config=RetryConfig(base_delay=0, jitter=False))

        event = await create(scheduler)

        assert store.saves == 3
        assert (await scheduler.get_event(event.id)).event.id == event.id

    async def test_retries_are_bounded(self, seeded_snapshot, clock):
        store = FlakyStore(seeded_snapshot, failures=5)
        scheduler = EventScheduler(
            store, clock=clock, retry_config=RetryConfig(max_attempts=2, base_delay=0, jitter=False)
        )

        with pytest.raises(OptimisticLockError):
            await create(scheduler)
        assert store.saves == 2

    async def test_persistence_failure_is_not_retried(self, seeded_snapshot, clock):
        scheduler = EventScheduler(BrokenStore(seeded_snapshot), clock=clock)

        with pytest.raises(PersistenceError):
            await create(scheduler)
