"""
Waitlist schemas.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class WaitlistJoinResponse(BaseModel):
    """Schema for a newly joined waitlist entry."""

    event_id: UUID
    user_id: str
    position: int
    joined_at: datetime


class WaitlistEntryResponse(BaseModel):
    """Schema for one entry of the organizer's waitlist view."""

    position: int
    user_id: str
    display_name: Optional[str] = None
    joined_at: datetime
