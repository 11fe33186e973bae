"""
Seat ledger for one event: bookings, cancellations, capacity changes and the
FIFO waitlist.

Seats are dense: after every mutation the booked seats are exactly
``1..taken``. A cancellation closes the gap by renumbering the remaining
bookings in their previous seat order, so a seat number is a rank and not a
stable ticket identity.
"""

import logging
from typing import Callable, List, Optional

from ..domain.records import Booking, Event, WaitlistEntry
from ..utils.clock import Clock
from ..utils.exceptions import (
    AlreadyBookedError,
    AlreadyWaitlistedError,
    AuthorizationError,
    BelowBookedError,
    BookingNotFoundError,
    EventFullError,
    EventLiveError,
    InvalidCapacityError,
    NotWaitlistedError,
    SelfBookingForbiddenError,
    SelfJoinForbiddenError,
    VolunteerCannotBookError,
)
from .notification_service import Messages, NotificationEmitter

logger = logging.getLogger(__name__)


class SeatLedger:
    """Capacity-bounded seat allocation for a single event."""

    def __init__(self, event: Event, emitter: NotificationEmitter, clock: Clock):
        self.event = event
        self.emitter = emitter
        self.clock = clock

    @property
    def _event_id(self) -> str:
        return str(self.event.id)

    def _meta(self, kind: str, **extra) -> dict:
        return {"type": kind, "event_id": self._event_id, **extra}

    def book(self, user_id: str) -> Booking:
        """
        Give the user the next seat.

        Raises:
            SelfBookingForbiddenError: The user created the event
            VolunteerCannotBookError: The user holds a volunteer slot
            AlreadyBookedError: The user already holds a seat
            EventFullError: Every seat is taken (the user is still told so)
        """
        event = self.event
        if user_id == event.creator_id:
            raise SelfBookingForbiddenError(self._event_id)
        if event.volunteer_for(user_id):
            raise VolunteerCannotBookError(self._event_id, user_id)
        if event.booking_for(user_id):
            raise AlreadyBookedError(self._event_id, user_id)
        if event.taken >= event.capacity:
            self.emitter.push(user_id, Messages.event_full(event.title), self._meta("event_full"))
            raise EventFullError(self._event_id, event.capacity)

        booking = self._assign_seat(user_id)
        self.emitter.push(user_id, Messages.booked(event.title), self._meta("booking", seat=booking.seat))
        event.check_invariants()

        logger.info(f"User {user_id} booked seat {booking.seat} for event {event.id}")
        return booking

    def cancel(self, user_id: str) -> Optional[Booking]:
        """Cancel the user's own booking; returns the promoted booking, if any."""
        return self._cancel(user_id, Messages.ticket_cancelled)

    def admin_cancel(self, target_user_id: str, requester_id: str) -> Optional[Booking]:
        """Organizer cancels someone else's booking."""
        if requester_id != self.event.creator_id:
            raise AuthorizationError(
                "Only the organizer can cancel bookings for this event.",
                required_permission="event_creator"
            )
        return self._cancel(target_user_id, Messages.ticket_cancelled_by_organizer)

    def resize(self, new_capacity: int) -> List[Booking]:
        """
        Change the capacity, promoting waitlisted users into new seats.

        Args:
            new_capacity: Positive capacity, not below the booked seats

        Returns:
            Bookings created for promoted users, in FIFO order

        Raises:
            InvalidCapacityError: Capacity is not a positive integer
            BelowBookedError: Capacity would drop below the booked seats
        """
        event = self.event
        self.check_capacity(new_capacity, event.taken)

        old_capacity = event.capacity
        event.capacity = new_capacity

        promoted: List[Booking] = []
        if new_capacity > old_capacity:
            additional_seats = new_capacity - old_capacity
            available_seats = new_capacity - event.taken
            to_promote = min(additional_seats, available_seats, len(event.waitlist))
            if to_promote:
                logger.info(
                    f"Capacity of event {event.id} increased from {old_capacity} to "
                    f"{new_capacity}. Auto-booking {to_promote} users from waitlist."
                )
            promoted = self._promote(to_promote, Messages.promoted_after_resize)

        event.check_invariants()
        return promoted

    def join_waitlist(self, user_id: str) -> WaitlistEntry:
        """Append the user to the tail of the waitlist."""
        event = self.event
        if user_id == event.creator_id:
            raise SelfJoinForbiddenError(self._event_id)
        if event.booking_for(user_id):
            raise AlreadyBookedError(self._event_id, user_id)
        if event.waitlist_entry_for(user_id):
            raise AlreadyWaitlistedError(self._event_id, user_id)
        if event.volunteer_for(user_id):
            raise VolunteerCannotBookError(self._event_id, user_id)

        entry = WaitlistEntry(user_id=user_id, joined_at=self.clock.now())
        event.waitlist.append(entry)
        self.emitter.push(user_id, Messages.waitlist_joined(event.title), self._meta("waitlist"))

        logger.info(f"User {user_id} joined waitlist for event {event.id} at position {len(event.waitlist)}")
        return entry

    def leave_waitlist(self, user_id: str) -> WaitlistEntry:
        """Remove the user's entry; everyone behind keeps their relative order."""
        entry = self.event.waitlist_entry_for(user_id)
        if entry is None:
            raise NotWaitlistedError(self._event_id, user_id)
        self.event.waitlist.remove(entry)
        logger.info(f"User {user_id} left waitlist for event {self.event.id}")
        return entry

    def waitlist_position(self, user_id: str) -> Optional[int]:
        """1-based position of the user in the waitlist, or None."""
        return self.event.waitlist_position(user_id)

    @staticmethod
    def check_capacity(new_capacity: int, taken: int = 0) -> None:
        """Reject capacities that are not positive integers or below ``taken``."""
        if isinstance(new_capacity, bool) or not isinstance(new_capacity, int) or new_capacity <= 0:
            raise InvalidCapacityError(new_capacity)
        if new_capacity < taken:
            raise BelowBookedError(taken, new_capacity)

    # Private helper methods

    def _cancel(self, user_id: str, message: Callable[[str], str]) -> Optional[Booking]:
        event = self.event
        if event.has_started(self.clock.now()):
            raise EventLiveError(self._event_id)
        booking = event.booking_for(user_id)
        if booking is None:
            raise BookingNotFoundError(self._event_id, user_id)

        event.bookings.remove(booking)
        self._renumber()
        self.emitter.push(user_id, message(event.title), self._meta("booking_cancelled"))

        promoted = self._promote(1, Messages.promoted_after_cancellation)
        event.check_invariants()

        logger.info(f"Booking of user {user_id} for event {event.id} cancelled")
        return promoted[0] if promoted else None

    def _renumber(self) -> None:
        """Reassign seats ``1..taken`` keeping the previous seat order."""
        self.event.bookings.sort(key=lambda b: b.seat)
        for seat, booking in enumerate(self.event.bookings, start=1):
            booking.seat = seat

    def _assign_seat(self, user_id: str) -> Booking:
        event = self.event
        booking = Booking(
            user_id=user_id,
            seat=event.taken + 1,
            event_id=event.id,
            booked_at=self.clock.now(),
        )
        event.bookings.append(booking)
        # A direct booking supersedes any place the user held in the queue.
        entry = event.waitlist_entry_for(user_id)
        if entry is not None:
            event.waitlist.remove(entry)
        return booking

    def _promote(self, count: int, message: Callable[[str, int], str]) -> List[Booking]:
        """Pop ``count`` users from the head of the waitlist into new seats."""
        event = self.event
        promoted: List[Booking] = []
        for _ in range(count):
            if not event.waitlist or event.taken >= event.capacity:
                break
            entry = event.waitlist.pop(0)
            booking = self._assign_seat(entry.user_id)
            promoted.append(booking)
            self.emitter.push(
                entry.user_id,
                message(event.title, booking.seat),
                self._meta("waitlist_promotion", seat=booking.seat)
            )
            logger.info(f"Auto-booked user {entry.user_id} for event {event.id} with seat {booking.seat}")
        return promoted
