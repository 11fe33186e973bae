"""
Notification emission for scheduling side effects.

The engine only decides what to say and to whom. Operations push into a
``NotificationOutbox`` which the unit of work delivers into the snapshot inbox
once the operation commits, preserving push order.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol

from ..domain.records import Notification
from ..utils.clock import Clock

logger = logging.getLogger(__name__)


class NotificationEmitter(Protocol):
    """Receives ``(recipient, message, metadata)`` side effects."""

    def push(self, recipient_id: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        ...


class NotificationOutbox:
    """Ordered buffer of notifications produced by one operation."""

    def __init__(self, clock: Clock):
        self.clock = clock
        self.items: List[Notification] = []

    def push(self, recipient_id: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.items.append(
            Notification(
                recipient_id=recipient_id,
                message=text,
                metadata=metadata or {},
                created_at=self.clock.now(),
            )
        )

    def broadcast(self, recipient_ids: Iterable[str], text: str, metadata: Optional[Dict[str, Any]] = None) -> int:
        """Push the same message to every recipient; returns how many were queued."""
        count = 0
        for recipient_id in recipient_ids:
            self.push(recipient_id, text, metadata)
            count += 1
        logger.debug(f"Broadcast queued for {count} recipients")
        return count

    def clear(self) -> None:
        self.items.clear()

    def __iter__(self) -> Iterator[Notification]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class Messages:
    """Notification texts shown to users."""

    @staticmethod
    def new_event(title: str, date: str) -> str:
        return f"📢 New Event: {title} on {date}"

    @staticmethod
    def event_updated(title: str) -> str:
        return f"✏️ Event Updated: Details for '{title}' have changed."

    @staticmethod
    def event_cancelled(title: str) -> str:
        return f"❌ Event Cancelled: '{title}' has been cancelled."

    @staticmethod
    def event_live(title: str) -> str:
        return f"🔥 Event Live: '{title}' is now live!"

    @staticmethod
    def reminder(title: str, minutes: int) -> str:
        return f"⏳ Reminder: '{title}' starts in about {minutes} minutes!"

    @staticmethod
    def booked(title: str) -> str:
        return f"🎟️ You booked a ticket for {title}"

    @staticmethod
    def event_full(title: str) -> str:
        return f"⚠️ Event {title} is full."

    @staticmethod
    def ticket_cancelled(title: str) -> str:
        return f"✅ Your ticket for '{title}' has been cancelled."

    @staticmethod
    def ticket_cancelled_by_organizer(title: str) -> str:
        return f"❌ Your ticket for '{title}' was cancelled by the organizer."

    @staticmethod
    def promoted_after_cancellation(title: str, seat: int) -> str:
        return (
            f"✅ A seat opened up for '{title}'. You have been auto-booked "
            f"from the waitlist. Your seat: {seat}"
        )

    @staticmethod
    def promoted_after_resize(title: str, seat: int) -> str:
        return (
            f"🎉 Great news! You've been auto-booked for '{title}' due to "
            f"increased capacity. Your seat: {seat}"
        )

    @staticmethod
    def waitlist_joined(title: str) -> str:
        return f"📝 You joined the waitlist for '{title}'. We'll auto-book if a seat opens."

    @staticmethod
    def volunteer_invited(title: str, role: str) -> str:
        return f"🤝 Organizer invited you to volunteer for '{title}' as '{role}'."

    @staticmethod
    def volunteer_accepted(title: str, role: str) -> str:
        return f"✅ You accepted volunteer role '{role}' for '{title}'."

    @staticmethod
    def volunteer_accepted_for_organizer(user_id: str, title: str, role: str) -> str:
        return f"✅ {user_id} accepted volunteer role '{role}' for '{title}'."

    @staticmethod
    def volunteer_rejected(title: str, role: str) -> str:
        return f"❌ You rejected volunteer role '{role}' for '{title}'."

    @staticmethod
    def volunteer_rejected_for_organizer(user_id: str, title: str, role: str) -> str:
        return f"❌ {user_id} rejected volunteer role '{role}' for '{title}'."

    @staticmethod
    def volunteer_removed(title: str) -> str:
        return f"❌ Your volunteer role for '{title}' has been cancelled."
