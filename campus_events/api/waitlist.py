"""
Waitlist endpoints.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..schemas.common import ERROR_RESPONSES
from ..schemas.waitlist import WaitlistEntryResponse, WaitlistJoinResponse
from ..services.event_scheduler import EventScheduler
from ..utils.dependencies import get_current_user_id, get_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events/{event_id}/waitlist", tags=["waitlist"], responses=ERROR_RESPONSES)


@router.post("/", response_model=WaitlistJoinResponse, status_code=status.HTTP_201_CREATED)
async def join_waitlist(
    event_id: UUID,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Join the tail of the waitlist; seats are handed out first come, first served."""
    entry, position = await scheduler.join_waitlist(event_id, current_user_id)
    return WaitlistJoinResponse(
        event_id=event_id,
        user_id=entry.user_id,
        position=position,
        joined_at=entry.joined_at,
    )


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def leave_waitlist(
    event_id: UUID,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Leave the waitlist."""
    await scheduler.leave_waitlist(event_id, current_user_id)
    logger.info(f"User {current_user_id} left waitlist for event {event_id}")


@router.get("/", response_model=List[WaitlistEntryResponse])
async def get_waitlist(
    event_id: UUID,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """The waitlist in promotion order (creator only)."""
    return await scheduler.get_waitlist(event_id, current_user_id)
