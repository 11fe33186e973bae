"""
Volunteer schemas.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..domain.records import RequestStatus


class VolunteerRequestCreate(BaseModel):
    """Schema for inviting a user to take a role."""

    user_id: str = Field(..., min_length=1)
    role: str = Field(..., description="Exclusive role name, e.g. usher")


class VolunteerDecision(BaseModel):
    """Schema for answering an invitation."""

    decision: str = Field(..., description="accept or reject")


class VolunteerRequestResponse(BaseModel):
    """Schema for a volunteer request."""

    id: UUID
    user_id: str
    role: str
    status: RequestStatus
    requested_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VolunteerDecisionResponse(BaseModel):
    """Schema for the outcome of a decision."""

    status: str
    role: str
    volunteer_id: Optional[str] = None


class VolunteerListingEntry(BaseModel):
    """Accepted volunteers and requests as the organizer sees them."""

    user_id: str
    role: str
    status: str
    volunteer_id: Optional[str] = None
