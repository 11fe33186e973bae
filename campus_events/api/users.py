"""
User reference endpoints.
"""

import logging

from fastapi import APIRouter, Depends, status

from ..schemas.common import ERROR_RESPONSES
from ..schemas.user import UserRegister, UserResponse
from ..services.event_scheduler import EventScheduler
from ..utils.dependencies import get_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"], responses=ERROR_RESPONSES)


def _to_response(profile) -> UserResponse:
    return UserResponse(
        user_id=profile.user_id,
        name=profile.name,
        surname=profile.surname,
        role=profile.role,
        display_name=profile.display_name,
    )


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserRegister,
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """
    Register or refresh a user reference.

    - **user_id**: Identifier issued by the identity service
    - **name** / **surname**: Shown to organizers on waitlists and listings
    """
    profile = await scheduler.register_user(**user_data.model_dump())
    return _to_response(profile)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    scheduler: EventScheduler = Depends(get_scheduler)
):
    """Get a registered user."""
    return _to_response(await scheduler.get_user(user_id))
