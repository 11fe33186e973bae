"""Scheduling services for the Campus Events engine."""

from .conflict_checker import ConflictChecker
from .event_scheduler import EventDetails, EventScheduler
from .notification_service import Messages, NotificationOutbox
from .seat_ledger import SeatLedger
from .volunteer_roster import VolunteerRoster

__all__ = [
    "ConflictChecker",
    "EventDetails",
    "EventScheduler",
    "Messages",
    "NotificationOutbox",
    "SeatLedger",
    "VolunteerRoster",
]
