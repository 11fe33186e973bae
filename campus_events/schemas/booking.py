"""
Booking and ticket schemas.
"""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BookingResponse(BaseModel):
    """Schema for a confirmed seat."""

    event_id: UUID
    user_id: str
    seat: int
    booked_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminCancelRequest(BaseModel):
    """Schema for an organizer cancelling someone else's booking."""

    user_id: str = Field(..., min_length=1, description="Holder of the booking to cancel")


class CancellationResponse(BaseModel):
    """Schema for cancellation response."""

    event_id: UUID
    cancelled_user_id: str
    promoted: Optional[BookingResponse] = Field(
        None, description="Waitlisted user moved into the freed seat, if any"
    )


class TicketResponse(BaseModel):
    """A booking or waitlist entry held by the current user."""

    event_id: UUID
    title: str
    venue: str
    start: datetime
    status: Literal["booked", "waitlisted"]
    seat: Optional[int] = None
    waitlist_position: Optional[int] = None
