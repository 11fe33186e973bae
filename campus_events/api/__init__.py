"""API endpoints for the Campus Events engine."""

from fastapi import APIRouter
from .users import router as users_router
from .events import router as events_router
from .tickets import router as tickets_router
from .waitlist import router as waitlist_router
from .volunteers import router as volunteers_router
from .notifications import router as notifications_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(users_router)
api_router.include_router(events_router)
api_router.include_router(tickets_router)
api_router.include_router(waitlist_router)
api_router.include_router(volunteers_router)
api_router.include_router(notifications_router)

__all__ = ["api_router"]
