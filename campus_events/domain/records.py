"""
Domain records held in the event snapshot.

Every record is an explicit pydantic model; an ``Event`` re-checks its
allocation invariants when it is constructed or loaded, and the services call
``Event.check_invariants`` again after every mutation.
"""

import enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Set
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from .time_window import TimeWindow
from ..utils.exceptions import EventNotFoundError, UserNotFoundError


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def volunteer_id_for(rank: int) -> str:
    """Dense volunteer identifier for a 1-based rank, e.g. ``V01``."""
    return f"V{rank:02d}"


class RequestStatus(str, enum.Enum):
    """Lifecycle of a volunteer request."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Booking(BaseModel):
    """A confirmed seat held by a user."""

    user_id: str
    seat: int = Field(..., ge=1)
    event_id: UUID
    booked_at: datetime


class WaitlistEntry(BaseModel):
    """A user queued for the next free seat."""

    user_id: str
    joined_at: datetime


class VolunteerSlot(BaseModel):
    """An accepted volunteer holding an exclusive role."""

    user_id: str
    role: str
    volunteer_id: str


class VolunteerRequest(BaseModel):
    """An organizer invitation for a user to take a role."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    role: str
    status: RequestStatus = RequestStatus.PENDING
    requested_at: datetime


class Event(BaseModel):
    """An event together with its seat ledger and volunteer roster."""

    id: UUID = Field(default_factory=uuid4)
    title: str = Field(..., min_length=1)
    venue: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    start: datetime
    duration_minutes: int = Field(..., gt=0)
    capacity: int = Field(..., gt=0)
    resources: List[str] = Field(default_factory=list)
    creator_id: str
    bookings: List[Booking] = Field(default_factory=list)
    waitlist: List[WaitlistEntry] = Field(default_factory=list)
    volunteers: List[VolunteerSlot] = Field(default_factory=list)
    volunteer_requests: List[VolunteerRequest] = Field(default_factory=list)
    emitted_markers: Set[str] = Field(default_factory=set)
    created_at: Optional[datetime] = None

    @field_validator("start")
    @classmethod
    def start_in_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("resources")
    @classmethod
    def normalize_resources(cls, v: List[str]) -> List[str]:
        """Strip names, drop blanks and duplicates, keep declaration order."""
        seen: List[str] = []
        for name in v:
            name = name.strip()
            if name and name not in seen:
                seen.append(name)
        return seen

    @model_validator(mode="after")
    def validate_allocation(self) -> "Event":
        self.check_invariants()
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def taken(self) -> int:
        """Number of seats currently booked."""
        return len(self.bookings)

    @property
    def window(self) -> TimeWindow:
        return TimeWindow.from_minutes(self.start, self.duration_minutes)

    @property
    def end(self) -> datetime:
        return self.window.end

    def has_started(self, now: datetime) -> bool:
        return now >= self.start

    def is_live(self, now: datetime) -> bool:
        return self.window.contains(now)

    def booking_for(self, user_id: str) -> Optional[Booking]:
        return next((b for b in self.bookings if b.user_id == user_id), None)

    def waitlist_entry_for(self, user_id: str) -> Optional[WaitlistEntry]:
        return next((w for w in self.waitlist if w.user_id == user_id), None)

    def waitlist_position(self, user_id: str) -> Optional[int]:
        """1-based position of the user in the waitlist, or None."""
        for position, entry in enumerate(self.waitlist, start=1):
            if entry.user_id == user_id:
                return position
        return None

    def volunteer_for(self, user_id: str) -> Optional[VolunteerSlot]:
        return next((v for v in self.volunteers if v.user_id == user_id), None)

    def volunteer_with_role(self, role: str) -> Optional[VolunteerSlot]:
        return next((v for v in self.volunteers if v.role == role), None)

    def pending_request_for_user(self, user_id: str) -> Optional[VolunteerRequest]:
        return next(
            (r for r in self.volunteer_requests
             if r.user_id == user_id and r.status == RequestStatus.PENDING),
            None
        )

    def pending_request_for_role(self, role: str) -> Optional[VolunteerRequest]:
        return next(
            (r for r in self.volunteer_requests
             if r.role == role and r.status == RequestStatus.PENDING),
            None
        )

    def check_invariants(self) -> None:
        """Raise ``ValueError`` if the ledger or roster is inconsistent."""
        if self.taken > self.capacity:
            raise ValueError(f"taken {self.taken} exceeds capacity {self.capacity}")

        seats = sorted(b.seat for b in self.bookings)
        if seats != list(range(1, self.taken + 1)):
            raise ValueError(f"seat numbers {seats} are not contiguous from 1")

        booked = [b.user_id for b in self.bookings]
        if len(set(booked)) != len(booked):
            raise ValueError("a user holds more than one booking")

        waiting = [w.user_id for w in self.waitlist]
        if len(set(waiting)) != len(waiting):
            raise ValueError("a user appears more than once on the waitlist")
        if set(booked) & set(waiting):
            raise ValueError("a user is both booked and waitlisted")

        roles = [v.role for v in self.volunteers]
        if len(set(roles)) != len(roles):
            raise ValueError("a volunteer role is held more than once")
        if set(booked) & {v.user_id for v in self.volunteers}:
            raise ValueError("a user is both booked and an accepted volunteer")
        expected_ids = [volunteer_id_for(i) for i in range(1, len(self.volunteers) + 1)]
        if [v.volunteer_id for v in self.volunteers] != expected_ids:
            raise ValueError("volunteer ids are not dense")

        pending = [r for r in self.volunteer_requests if r.status == RequestStatus.PENDING]
        if len({r.role for r in pending}) != len(pending):
            raise ValueError("a role has more than one pending request")
        if len({r.user_id for r in pending}) != len(pending):
            raise ValueError("a user has more than one pending request")


class UserProfile(BaseModel):
    """Reference to a user owned by the external identity service."""

    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    surname: str = ""
    role: str = "STUDENT"

    @property
    def display_name(self) -> str:
        return f"{self.name} {self.surname}".strip()


class MediaRef(BaseModel):
    """Reference to a photo or video stored outside the engine."""

    id: UUID = Field(default_factory=uuid4)
    event_id: UUID
    name: str
    url: str
    media_type: Literal["photo", "video"] = "photo"


class Notification(BaseModel):
    """A message produced for one recipient."""

    recipient_id: str
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    read: bool = False


class Snapshot(BaseModel):
    """Everything the engine persists, loaded and saved as one unit."""

    version: int = 0
    users: List[UserProfile] = Field(default_factory=list)
    events: List[Event] = Field(default_factory=list)
    media: List[MediaRef] = Field(default_factory=list)
    notifications: Dict[str, List[Notification]] = Field(default_factory=dict)

    def get_event(self, event_id: UUID) -> Event:
        for event in self.events:
            if event.id == event_id:
                return event
        raise EventNotFoundError(str(event_id))

    def find_user(self, user_id: str) -> Optional[UserProfile]:
        return next((u for u in self.users if u.user_id == user_id), None)

    def get_user(self, user_id: str) -> UserProfile:
        user = self.find_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def media_for(self, event_id: UUID) -> List[MediaRef]:
        return [m for m in self.media if m.event_id == event_id]

    def deliver(self, notifications: List[Notification]) -> None:
        """Store notifications in their recipients' inboxes, newest first."""
        for notification in notifications:
            inbox = self.notifications.setdefault(notification.recipient_id, [])
            inbox.insert(0, notification)
