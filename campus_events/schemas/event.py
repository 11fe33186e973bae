"""
Event schemas for request/response validation.

Capacity and start time are validated by the engine so the caller gets the
engine's error codes (``INVALID_CAPACITY``, future-start validation).
"""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..services.event_scheduler import EventDetails


class EventCreate(BaseModel):
    """Schema for creating a new event."""

    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    venue: str = Field(..., min_length=1, max_length=255, description="Event venue")
    category: str = Field(..., min_length=1, max_length=100, description="Event category")
    start: datetime = Field(..., description="Start date and time; naive values are read as UTC")
    duration_minutes: int = Field(..., description="Duration in minutes")
    capacity: int = Field(..., description="Number of seats")
    resources: List[str] = Field(default_factory=list, description="Exclusive resources, e.g. projector")


class EventUpdate(BaseModel):
    """Schema for updating an existing event; omitted fields are unchanged."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    venue: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    start: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    capacity: Optional[int] = None
    resources: Optional[List[str]] = None


class MediaCreate(BaseModel):
    """Schema for attaching a photo or video reference to an event."""

    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    media_type: Literal["photo", "video"] = "photo"


class MediaResponse(BaseModel):
    """Schema for media response."""

    id: UUID
    event_id: UUID
    name: str
    url: str
    media_type: str

    model_config = ConfigDict(from_attributes=True)


class EventResponse(BaseModel):
    """Schema for event response."""

    id: UUID
    title: str
    venue: str
    category: str
    start: datetime
    end: datetime
    duration_minutes: int
    capacity: int
    taken: int
    available: int
    resources: List[str]
    creator_id: str
    creator_name: Optional[str] = None
    waitlist_length: int
    volunteer_count: int
    created_at: Optional[datetime] = None
    media: List[MediaResponse] = Field(default_factory=list)

    @classmethod
    def from_details(cls, details: EventDetails) -> "EventResponse":
        event = details.event
        return cls(
            id=event.id,
            title=event.title,
            venue=event.venue,
            category=event.category,
            start=event.start,
            end=event.end,
            duration_minutes=event.duration_minutes,
            capacity=event.capacity,
            taken=event.taken,
            available=event.capacity - event.taken,
            resources=event.resources,
            creator_id=event.creator_id,
            creator_name=details.creator.display_name if details.creator else None,
            waitlist_length=len(event.waitlist),
            volunteer_count=len(event.volunteers),
            created_at=event.created_at,
            media=[MediaResponse.model_validate(m, from_attributes=True) for m in details.media],
        )


class EventListResponse(BaseModel):
    """Schema for event list response."""

    events: List[EventResponse]
    total: int
