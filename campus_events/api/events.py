"""
Event management endpoints, including media references.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..schemas.common import ERROR_RESPONSES
from ..schemas.event import (
    EventCreate,
    EventListResponse,
    EventResponse,
    EventUpdate,
    MediaCreate,
    MediaResponse,
)
from ..services.event_scheduler import EventDetails, EventScheduler
from ..utils.dependencies import get_current_user_id, get_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"], responses=ERROR_RESPONSES)


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """
    Create a new event.

    - **start**: Must be in the future
    - **venue**: Must be free for the whole window on that date
    - **resources**: Each must be free at every venue for the whole window
    """
    event = await scheduler.create_event(creator_id=current_user_id, **event_data.model_dump())
    logger.info(f"Event {event.id} created by {current_user_id}")
    return EventResponse.from_details(EventDetails(event))


@router.get("/", response_model=EventListResponse)
async def list_events(scheduler: EventScheduler = Depends(get_scheduler)):
    """
    List every event.

    Listing also fires due live broadcasts and countdown reminders.
    """
    listing = await scheduler.list_events()
    return EventListResponse(
        events=[EventResponse.from_details(details) for details in listing],
        total=len(listing),
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: UUID,
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Get a specific event by ID."""
    return EventResponse.from_details(await scheduler.get_event(event_id))


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    event_data: EventUpdate,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """
    Update an event (creator only, before it starts).

    Raising the capacity books waitlisted users into the new seats.
    """
    await scheduler.update_event(event_id, current_user_id, **event_data.model_dump(exclude_unset=True))
    return EventResponse.from_details(await scheduler.get_event(event_id))


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Delete an event and its media (creator only, before it starts)."""
    await scheduler.delete_event(event_id, current_user_id)
    logger.info(f"Event {event_id} deleted by {current_user_id}")


@router.post("/{event_id}/media", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
async def attach_media(
    event_id: UUID,
    media_data: MediaCreate,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Attach a photo or video reference to an event (creator only)."""
    media = await scheduler.attach_media(event_id, current_user_id, **media_data.model_dump())
    return MediaResponse.model_validate(media, from_attributes=True)


@router.delete("/media/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_media(
    media_id: UUID,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Remove a media reference (creator of its event only)."""
    await scheduler.remove_media(media_id, current_user_id)
