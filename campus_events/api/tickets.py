"""
Ticket booking endpoints.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..schemas.booking import (
    AdminCancelRequest,
    BookingResponse,
    CancellationResponse,
    TicketResponse,
)
from ..schemas.common import ERROR_RESPONSES
from ..services.event_scheduler import EventScheduler
from ..utils.dependencies import get_current_user_id, get_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tickets"], responses=ERROR_RESPONSES)


def _cancellation(event_id: UUID, user_id: str, promoted) -> CancellationResponse:
    return CancellationResponse(
        event_id=event_id,
        cancelled_user_id=user_id,
        promoted=BookingResponse.model_validate(promoted, from_attributes=True) if promoted else None,
    )


@router.post("/events/{event_id}/tickets", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_ticket(
    event_id: UUID,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """
    Book the next free seat.

    A full event answers 409 ``EVENT_FULL``; the caller is also notified and
    can join the waitlist.
    """
    booking = await scheduler.book(event_id, current_user_id)
    return BookingResponse.model_validate(booking, from_attributes=True)


@router.delete("/events/{event_id}/tickets", response_model=CancellationResponse)
async def cancel_ticket(
    event_id: UUID,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Cancel your own ticket; the head of the waitlist takes the freed seat."""
    promoted = await scheduler.cancel_booking(event_id, current_user_id)
    return _cancellation(event_id, current_user_id, promoted)


@router.post("/events/{event_id}/tickets/cancel", response_model=CancellationResponse)
async def cancel_ticket_as_organizer(
    event_id: UUID,
    cancel_data: AdminCancelRequest,
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Cancel another user's ticket (creator only)."""
    promoted = await scheduler.admin_cancel_booking(event_id, cancel_data.user_id, current_user_id)
    return _cancellation(event_id, cancel_data.user_id, promoted)


@router.get("/tickets/me", response_model=List[TicketResponse])
async def my_tickets(
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Bookings and waitlist entries held by the caller."""
    return await scheduler.list_tickets(current_user_id)
