"""
Notification inbox endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from ..schemas.notification import MarkReadResponse, NotificationResponse
from ..services.event_scheduler import EventScheduler
from ..utils.dependencies import get_current_user_id, get_scheduler

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False, description="Only return unread notifications"),
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """The caller's notifications, newest first."""
    notifications = await scheduler.list_notifications(current_user_id, unread_only=unread_only)
    return [NotificationResponse.model_validate(n, from_attributes=True) for n in notifications]


@router.post("/read", response_model=MarkReadResponse)
async def mark_notifications_read(
    current_user_id: str = Depends(get_current_user_id),
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Mark every notification of the caller as read."""
    return MarkReadResponse(marked=await scheduler.mark_notifications_read(current_user_id))
