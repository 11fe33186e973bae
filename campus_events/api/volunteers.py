"""
Volunteer roster endpoints.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..domain.records import VolunteerSlot
from ..schemas.common import ERROR_RESPONSES
from ..schemas.volunteer import (
    VolunteerDecision,
    VolunteerDecisionResponse,
    VolunteerListingEntry,
    VolunteerRequestCreate,
    VolunteerRequestResponse,
)
from ..services.event_scheduler import EventScheduler
from ..utils.dependencies import get_current_user_id, get_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events/{event_id}/volunteers", tags=["volunteers"], responses=ERROR_RESPONSES)


@router.post("/requests", response_model=VolunteerRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_volunteer(
    event_id: UUID,
    request_data: VolunteerRequestCreate,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """
    Invite a user to take a role (creator only).

    - **role**: Held by at most one volunteer and one pending invitation
    """
    invitation = await scheduler.request_volunteer(
        event_id, current_user_id, request_data.user_id, request_data.role
    )
    return VolunteerRequestResponse.model_validate(invitation, from_attributes=True)


@router.post("/requests/respond", response_model=VolunteerDecisionResponse)
async def respond_to_request(
    event_id: UUID,
    decision_data: VolunteerDecision,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Accept or reject your pending invitation."""
    outcome = await scheduler.respond_to_volunteer_request(event_id, current_user_id, decision_data.decision)
    if isinstance(outcome, VolunteerSlot):
        return VolunteerDecisionResponse(status="accepted", role=outcome.role, volunteer_id=outcome.volunteer_id)
    return VolunteerDecisionResponse(status=outcome.status.value, role=outcome.role)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_volunteer(
    event_id: UUID,
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Remove an accepted volunteer (creator only); remaining ids are re-ranked."""
    await scheduler.remove_volunteer(event_id, current_user_id, user_id)


@router.get("/", response_model=List[VolunteerListingEntry])
async def list_volunteers(
    event_id: UUID,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Accepted volunteers followed by every request (creator only)."""
    return await scheduler.list_volunteers(event_id, current_user_id)
