"""Domain records and value types for the scheduling engine."""

from .time_window import TimeWindow
from .records import (
    Booking,
    Event,
    MediaRef,
    Notification,
    RequestStatus,
    Snapshot,
    UserProfile,
    VolunteerRequest,
    VolunteerSlot,
    WaitlistEntry,
)

__all__ = [
    "TimeWindow",
    "Booking",
    "Event",
    "MediaRef",
    "Notification",
    "RequestStatus",
    "Snapshot",
    "UserProfile",
    "VolunteerRequest",
    "VolunteerSlot",
    "WaitlistEntry",
]
