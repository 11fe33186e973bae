"""
Event scheduler: the façade the API and the worker call.

Every mutating operation runs as a unit of work. It holds a keyed lock, loads
the snapshot, runs against in-memory records, delivers the notifications it
produced into the snapshot inbox and saves. A failed operation is discarded
unless its error asks for its side effects to be kept. A save that loses the
optimistic version race retries the whole unit of work against fresh state.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from ..domain.records import (
    Booking,
    Event,
    MediaRef,
    Notification,
    Snapshot,
    UserProfile,
    VolunteerRequest,
    VolunteerSlot,
    WaitlistEntry,
)
from ..locking import EVENTS_LOCK, USERS_LOCK, LocalLockManager, LockManager, event_lock_key
from ..store import EventStore
from ..utils.clock import Clock, SystemClock
from ..utils.exceptions import (
    AuthorizationError,
    CampusEventsError,
    EventLiveError,
    MediaNotFoundError,
    OptimisticLockError,
    ResourceConflictError,
    StartNotInFutureError,
    ValidationError,
    VenueConflictError,
)
from ..utils.logging_config import log_business_event
from ..utils.retry import RetryConfig, retry_async
from .conflict_checker import ConflictChecker
from .notification_service import Messages, NotificationOutbox
from .seat_ledger import SeatLedger
from .volunteer_roster import VolunteerRoster

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_REMINDER_THRESHOLDS = (60, 45, 25, 10)
LIVE_MARKER = "live"
EDITABLE_FIELDS = ("title", "venue", "category", "start", "duration_minutes", "resources")


def reminder_marker(minutes: int) -> str:
    return f"reminder:{minutes}"


@dataclass
class UnitOfWork:
    """State handed to one operation attempt."""
    snapshot: Snapshot
    outbox: NotificationOutbox
    # Operations that turn out to change nothing clear this to skip the save.
    dirty: bool = True


@dataclass
class EventDetails:
    """An event with the records the listing shows next to it."""
    event: Event
    creator: Optional[UserProfile] = None
    media: List[MediaRef] = field(default_factory=list)


def _field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    field_errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"]) or "event"
        field_errors.setdefault(field_path, []).append(error["msg"])
    return field_errors


class EventScheduler:
    """Creates, edits and removes events and runs every per-event operation."""

    def __init__(
        self,
        store: EventStore,
        locks: Optional[LockManager] = None,
        clock: Optional[Clock] = None,
        reminder_thresholds: Sequence[int] = DEFAULT_REMINDER_THRESHOLDS,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.store = store
        self.locks = locks or LocalLockManager()
        self.clock = clock or SystemClock()
        self.reminder_thresholds = tuple(sorted(reminder_thresholds, reverse=True))
        self.retry_config = retry_config or RetryConfig()

    # Unit of work

    async def _execute(self, lock_key: str, operation: Callable[[UnitOfWork], T]) -> T:
        async def attempt() -> T:
            async with self.locks.hold(lock_key):
                uow = UnitOfWork(await self.store.load(), NotificationOutbox(self.clock))
                try:
                    result = operation(uow)
                except CampusEventsError as exc:
                    if exc.persist_side_effects:
                        await self._commit(uow)
                    raise
                if uow.dirty:
                    await self._commit(uow)
                return result

        attempt.__name__ = getattr(operation, "__name__", "operation")
        return await retry_async(attempt, self.retry_config, retryable_exceptions=(OptimisticLockError,))

    async def _commit(self, uow: UnitOfWork) -> None:
        uow.snapshot.deliver(uow.outbox.items)
        await self.store.save(uow.snapshot)
        if uow.outbox:
            logger.debug(f"Delivered {len(uow.outbox)} notifications")

    async def _read(self, query: Callable[[Snapshot], T]) -> T:
        return query(await self.store.load())

    def _ledger(self, uow: UnitOfWork, event: Event) -> SeatLedger:
        return SeatLedger(event, uow.outbox, self.clock)

    def _roster(self, uow: UnitOfWork, event: Event) -> VolunteerRoster:
        return VolunteerRoster(event, uow.outbox, self.clock)

    @staticmethod
    def _require_creator(event: Event, requester_id: str, action: str) -> None:
        if requester_id != event.creator_id:
            raise AuthorizationError(
                f"You can only {action} events you created.",
                required_permission="event_creator"
            )

    @staticmethod
    def _validated(model, **fields):
        try:
            return model(**fields)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {model.__name__} details",
                field_errors=_field_errors(e)
            ) from e

    def _check_conflicts(self, snapshot: Snapshot, candidate: Event, exclude_event_id: Optional[UUID] = None) -> None:
        checker = ConflictChecker(snapshot.events)
        clash = checker.venue_conflict(candidate, exclude_event_id)
        if clash is not None:
            raise VenueConflictError(candidate.venue, str(clash.id))
        hit = checker.resource_conflict(candidate, exclude_event_id)
        if hit is not None:
            resource, holder = hit
            raise ResourceConflictError(resource, str(holder.id))

    # Event lifecycle

    async def create_event(
        self,
        *,
        title: str,
        venue: str,
        category: str,
        start: datetime,
        duration_minutes: int,
        capacity: int,
        creator_id: str,
        resources: Optional[List[str]] = None,
    ) -> Event:
        """
        Create an event after checking its time and both conflict kinds.

        Raises:
            InvalidCapacityError: Capacity is not a positive integer
            ValidationError: A field is missing or malformed, or start is not in the future
            VenueConflictError: Same venue and date with an overlapping window
            ResourceConflictError: A declared resource is held by an overlapping event
        """
        def create(uow: UnitOfWork) -> Event:
            now = self.clock.now()
            SeatLedger.check_capacity(capacity)
            event = self._validated(
                Event,
                title=title,
                venue=venue,
                category=category,
                start=start,
                duration_minutes=duration_minutes,
                capacity=capacity,
                resources=resources or [],
                creator_id=creator_id,
                created_at=now,
            )
            if event.start <= now:
                raise StartNotInFutureError(event.start.isoformat())
            self._check_conflicts(uow.snapshot, event)

            uow.snapshot.events.append(event)
            uow.outbox.broadcast(
                (user.user_id for user in uow.snapshot.users),
                Messages.new_event(event.title, event.start.date().isoformat()),
                {"type": "new_event", "event_id": str(event.id)}
            )
            log_business_event(
                "event_created",
                {"event_id": str(event.id), "venue": event.venue, "capacity": event.capacity},
                user_id=creator_id
            )
            return event

        return await self._execute(EVENTS_LOCK, create)

    async def update_event(
        self,
        event_id: UUID,
        requester_id: str,
        *,
        title: Optional[str] = None,
        venue: Optional[str] = None,
        category: Optional[str] = None,
        start: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
        capacity: Optional[int] = None,
        resources: Optional[List[str]] = None,
    ) -> Event:
        """
        Edit an event that has not started. Omitted fields keep their value.

        Growing the capacity promotes waitlisted users into the new seats;
        every booked user is then told the event changed.
        Moving the start re-arms the live broadcast and every reminder.
        """
        changes: Dict[str, Any] = {
            key: value for key, value in {
                "title": title,
                "venue": venue,
                "category": category,
                "start": start,
                "duration_minutes": duration_minutes,
                "resources": resources,
            }.items() if value is not None
        }

        def update(uow: UnitOfWork) -> Event:
            event = uow.snapshot.get_event(event_id)
            self._require_creator(event, requester_id, "edit")
            now = self.clock.now()
            if event.has_started(now):
                raise EventLiveError(str(event.id))

            current = {name: getattr(event, name) for name in EDITABLE_FIELDS}
            candidate = self._validated(
                Event,
                id=event.id,
                creator_id=event.creator_id,
                capacity=event.capacity,
                **{**current, **changes}
            )
            if candidate.start <= now:
                raise StartNotInFutureError(candidate.start.isoformat())
            new_capacity = event.capacity if capacity is None else capacity
            SeatLedger.check_capacity(new_capacity, event.taken)
            self._check_conflicts(uow.snapshot, candidate, exclude_event_id=event.id)

            rescheduled = candidate.start != event.start
            for name in EDITABLE_FIELDS:
                setattr(event, name, getattr(candidate, name))
            if rescheduled:
                # Countdown starts over for the new start time.
                event.emitted_markers.clear()
            promoted = self._ledger(uow, event).resize(new_capacity)

            uow.outbox.broadcast(
                (booking.user_id for booking in event.bookings),
                Messages.event_updated(event.title),
                {"type": "event_updated", "event_id": str(event.id)}
            )
            log_business_event(
                "event_updated",
                {"event_id": str(event.id), "capacity": event.capacity, "promoted": len(promoted)},
                user_id=requester_id
            )
            return event

        return await self._execute(event_lock_key(event_id), update)

    async def delete_event(self, event_id: UUID, requester_id: str) -> Event:
        """Remove an event that has not started, with its media; bookers are told."""
        def delete(uow: UnitOfWork) -> Event:
            snapshot = uow.snapshot
            event = snapshot.get_event(event_id)
            self._require_creator(event, requester_id, "delete")
            if event.has_started(self.clock.now()):
                raise EventLiveError(str(event.id))

            removed_media = len(snapshot.media_for(event.id))
            snapshot.media = [m for m in snapshot.media if m.event_id != event.id]
            uow.outbox.broadcast(
                (booking.user_id for booking in event.bookings),
                Messages.event_cancelled(event.title),
                {"type": "event_cancelled", "event_id": str(event.id)}
            )
            snapshot.events.remove(event)

            log_business_event(
                "event_deleted",
                {"event_id": str(event.id), "bookings": event.taken, "media_removed": removed_media},
                user_id=requester_id
            )
            return event

        return await self._execute(event_lock_key(event_id), delete)

    async def get_event(self, event_id: UUID) -> EventDetails:
        def query(snapshot: Snapshot) -> EventDetails:
            event = snapshot.get_event(event_id)
            return EventDetails(event, snapshot.find_user(event.creator_id), snapshot.media_for(event.id))

        return await self._read(query)

    async def list_events(self) -> List[EventDetails]:
        """Run the sweep, then list every event with its creator and media."""
        def listing(uow: UnitOfWork) -> List[EventDetails]:
            uow.dirty = self._sweep(uow) > 0
            snapshot = uow.snapshot
            return [
                EventDetails(event, snapshot.find_user(event.creator_id), snapshot.media_for(event.id))
                for event in snapshot.events
            ]

        return await self._execute(EVENTS_LOCK, listing)

    async def sweep(self) -> int:
        """Fire due live and reminder notifications; returns how many fired."""
        def run(uow: UnitOfWork) -> int:
            fired = self._sweep(uow)
            uow.dirty = fired > 0
            return fired

        fired = await self._execute(EVENTS_LOCK, run)
        if fired:
            logger.info(f"Sweep fired {fired} notifications")
        return fired

    def _sweep(self, uow: UnitOfWork) -> int:
        now = self.clock.now()
        everyone = [user.user_id for user in uow.snapshot.users]
        fired = 0

        for event in uow.snapshot.events:
            meta = {"type": "event_live", "event_id": str(event.id)}
            if event.is_live(now) and LIVE_MARKER not in event.emitted_markers:
                uow.outbox.broadcast(everyone, Messages.event_live(event.title), meta)
                event.emitted_markers.add(LIVE_MARKER)
                fired += 1

            until_start = event.start - now
            if until_start <= timedelta(0):
                continue
            booked = [booking.user_id for booking in event.bookings]
            for minutes in self.reminder_thresholds:
                marker = reminder_marker(minutes)
                if until_start <= timedelta(minutes=minutes) and marker not in event.emitted_markers:
                    uow.outbox.broadcast(
                        booked,
                        Messages.reminder(event.title, minutes),
                        {"type": "reminder", "event_id": str(event.id), "minutes": minutes}
                    )
                    event.emitted_markers.add(marker)
                    fired += 1

        return fired

    # Seats and waitlist

    async def book(self, event_id: UUID, user_id: str) -> Booking:
        def book(uow: UnitOfWork) -> Booking:
            uow.snapshot.get_user(user_id)
            event = uow.snapshot.get_event(event_id)
            booking = self._ledger(uow, event).book(user_id)
            log_business_event("seat_booked", {"event_id": str(event.id), "seat": booking.seat}, user_id=user_id)
            return booking

        return await self._execute(event_lock_key(event_id), book)

    async def cancel_booking(self, event_id: UUID, user_id: str) -> Optional[Booking]:
        """Cancel the user's booking; returns the booking promoted in its place."""
        def cancel(uow: UnitOfWork) -> Optional[Booking]:
            event = uow.snapshot.get_event(event_id)
            promoted = self._ledger(uow, event).cancel(user_id)
            self._log_cancellation(event, user_id, promoted, user_id)
            return promoted

        return await self._execute(event_lock_key(event_id), cancel)

    async def admin_cancel_booking(self, event_id: UUID, target_user_id: str, requester_id: str) -> Optional[Booking]:
        def cancel(uow: UnitOfWork) -> Optional[Booking]:
            event = uow.snapshot.get_event(event_id)
            promoted = self._ledger(uow, event).admin_cancel(target_user_id, requester_id)
            self._log_cancellation(event, target_user_id, promoted, requester_id)
            return promoted

        return await self._execute(event_lock_key(event_id), cancel)

    def _log_cancellation(self, event: Event, user_id: str, promoted: Optional[Booking], actor_id: str) -> None:
        log_business_event(
            "booking_cancelled",
            {
                "event_id": str(event.id),
                "cancelled_user_id": user_id,
                "promoted_user_id": promoted.user_id if promoted else None,
            },
            user_id=actor_id
        )

    async def join_waitlist(self, event_id: UUID, user_id: str) -> Tuple[WaitlistEntry, int]:
        """Queue the user; returns the entry and its 1-based position."""
        def join(uow: UnitOfWork) -> Tuple[WaitlistEntry, int]:
            uow.snapshot.get_user(user_id)
            event = uow.snapshot.get_event(event_id)
            entry = self._ledger(uow, event).join_waitlist(user_id)
            position = event.waitlist_position(user_id)
            log_business_event("waitlist_joined", {"event_id": str(event.id), "position": position}, user_id=user_id)
            return entry, position

        return await self._execute(event_lock_key(event_id), join)

    async def leave_waitlist(self, event_id: UUID, user_id: str) -> WaitlistEntry:
        def leave(uow: UnitOfWork) -> WaitlistEntry:
            event = uow.snapshot.get_event(event_id)
            return self._ledger(uow, event).leave_waitlist(user_id)

        return await self._execute(event_lock_key(event_id), leave)

    async def get_waitlist(self, event_id: UUID, organizer_id: str) -> List[Dict[str, Any]]:
        """Organizer view of the queue in promotion order."""
        def query(snapshot: Snapshot) -> List[Dict[str, Any]]:
            event = snapshot.get_event(event_id)
            self._require_creator(event, organizer_id, "view the waitlist of")
            waitlist = []
            for position, entry in enumerate(event.waitlist, start=1):
                profile = snapshot.find_user(entry.user_id)
                waitlist.append({
                    "position": position,
                    "user_id": entry.user_id,
                    "display_name": profile.display_name if profile else None,
                    "joined_at": entry.joined_at,
                })
            return waitlist

        return await self._read(query)

    async def list_tickets(self, user_id: str) -> List[Dict[str, Any]]:
        """Every booking and waitlist entry the user holds, in event order."""
        def query(snapshot: Snapshot) -> List[Dict[str, Any]]:
            tickets = []
            for event in snapshot.events:
                booking = event.booking_for(user_id)
                position = event.waitlist_position(user_id)
                if booking is None and position is None:
                    continue
                tickets.append({
                    "event_id": event.id,
                    "title": event.title,
                    "venue": event.venue,
                    "start": event.start,
                    "status": "booked" if booking else "waitlisted",
                    "seat": booking.seat if booking else None,
                    "waitlist_position": position,
                })
            return tickets

        return await self._read(query)

    # Volunteers

    async def request_volunteer(self, event_id: UUID, organizer_id: str, user_id: str, role: str) -> VolunteerRequest:
        def request(uow: UnitOfWork) -> VolunteerRequest:
            uow.snapshot.get_user(user_id)
            event = uow.snapshot.get_event(event_id)
            invitation = self._roster(uow, event).request_volunteer(organizer_id, user_id, role)
            log_business_event(
                "volunteer_requested",
                {"event_id": str(event.id), "volunteer_user_id": user_id, "role": invitation.role},
                user_id=organizer_id
            )
            return invitation

        return await self._execute(event_lock_key(event_id), request)

    async def respond_to_volunteer_request(self, event_id: UUID, user_id: str, decision: str):
        """Accept or reject the user's pending invitation."""
        def respond(uow: UnitOfWork):
            event = uow.snapshot.get_event(event_id)
            outcome = self._roster(uow, event).respond(user_id, decision)
            log_business_event(
                f"volunteer_{'accepted' if isinstance(outcome, VolunteerSlot) else 'rejected'}",
                {"event_id": str(event.id), "role": outcome.role},
                user_id=user_id
            )
            return outcome

        return await self._execute(event_lock_key(event_id), respond)

    async def remove_volunteer(self, event_id: UUID, organizer_id: str, user_id: str) -> VolunteerSlot:
        def remove(uow: UnitOfWork) -> VolunteerSlot:
            event = uow.snapshot.get_event(event_id)
            slot = self._roster(uow, event).remove(organizer_id, user_id)
            log_business_event(
                "volunteer_removed",
                {"event_id": str(event.id), "volunteer_user_id": user_id, "role": slot.role},
                user_id=organizer_id
            )
            return slot

        return await self._execute(event_lock_key(event_id), remove)

    async def list_volunteers(self, event_id: UUID, organizer_id: str) -> List[Dict[str, Any]]:
        def query(snapshot: Snapshot) -> List[Dict[str, Any]]:
            event = snapshot.get_event(event_id)
            self._require_creator(event, organizer_id, "view volunteers of")
            return VolunteerRoster(event, NotificationOutbox(self.clock), self.clock).listing()

        return await self._read(query)

    # Users

    async def register_user(self, user_id: str, name: str, surname: str = "", role: str = "STUDENT") -> UserProfile:
        """Record or refresh a user reference coming from the identity service."""
        def register(uow: UnitOfWork) -> UserProfile:
            profile = self._validated(UserProfile, user_id=user_id, name=name, surname=surname, role=role)
            existing = uow.snapshot.find_user(user_id)
            if existing is None:
                uow.snapshot.users.append(profile)
                logger.info(f"Registered user {user_id}")
                return profile
            existing.name, existing.surname, existing.role = profile.name, profile.surname, profile.role
            return existing

        return await self._execute(USERS_LOCK, register)

    async def get_user(self, user_id: str) -> UserProfile:
        return await self._read(lambda snapshot: snapshot.get_user(user_id))

    # Media

    async def attach_media(
        self, event_id: UUID, requester_id: str, name: str, url: str, media_type: str = "photo"
    ) -> MediaRef:
        def attach(uow: UnitOfWork) -> MediaRef:
            event = uow.snapshot.get_event(event_id)
            self._require_creator(event, requester_id, "add media to")
            media = self._validated(MediaRef, event_id=event.id, name=name, url=url, media_type=media_type)
            uow.snapshot.media.append(media)
            return media

        return await self._execute(event_lock_key(event_id), attach)

    async def remove_media(self, media_id: UUID, requester_id: str) -> MediaRef:
        def remove(uow: UnitOfWork) -> MediaRef:
            snapshot = uow.snapshot
            media = next((m for m in snapshot.media if m.id == media_id), None)
            if media is None:
                raise MediaNotFoundError(str(media_id))
            event = snapshot.get_event(media.event_id)
            self._require_creator(event, requester_id, "remove media from")
            snapshot.media.remove(media)
            return media

        return await self._execute(EVENTS_LOCK, remove)

    # Notifications

    async def list_notifications(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        """The user's inbox, newest first."""
        def query(snapshot: Snapshot) -> List[Notification]:
            inbox = snapshot.notifications.get(user_id, [])
            return [n for n in inbox if not n.read] if unread_only else list(inbox)

        return await self._read(query)

    async def mark_notifications_read(self, user_id: str) -> int:
        def mark(uow: UnitOfWork) -> int:
            unread = [n for n in uow.snapshot.notifications.get(user_id, []) if not n.read]
            for notification in unread:
                notification.read = True
            uow.dirty = bool(unread)
            return len(unread)

        return await self._execute(USERS_LOCK, mark)
