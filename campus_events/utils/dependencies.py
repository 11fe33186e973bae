"""
Scheduler construction and the FastAPI dependency that hands it to routes.
"""

import logging
from typing import Optional

from fastapi import Header, Request

from ..config import Settings, get_settings
from ..database import close_database, init_database
from ..locking import RedisLockManager, build_lock_manager
from ..services.event_scheduler import EventScheduler
from ..store import InMemoryEventStore, SqlEventStore
from .retry import RetryConfig

logger = logging.getLogger(__name__)


async def create_scheduler(settings: Optional[Settings] = None) -> EventScheduler:
    """Build a scheduler wired to the configured store and lock backends."""
    settings = settings or get_settings()

    if settings.store_backend == "memory":
        store = InMemoryEventStore()
    else:
        session_factory = await init_database(settings)
        store = SqlEventStore(session_factory, key=settings.snapshot_key)

    logger.info(f"Scheduler using {settings.store_backend} store and {settings.lock_backend} locks")
    return EventScheduler(
        store,
        locks=build_lock_manager(settings),
        reminder_thresholds=settings.reminder_thresholds_minutes,
        retry_config=RetryConfig(max_attempts=settings.max_retry_attempts),
    )


async def close_scheduler(scheduler: EventScheduler) -> None:
    """Release the connections a scheduler from ``create_scheduler`` holds."""
    if isinstance(scheduler.locks, RedisLockManager):
        await scheduler.locks.close()
    if isinstance(scheduler.store, SqlEventStore):
        await close_database()


def get_scheduler(request: Request) -> EventScheduler:
    """FastAPI dependency returning the application's scheduler."""
    return request.app.state.scheduler


def get_current_user_id(
    x_user_id: str = Header(..., min_length=1, description="Caller id issued by the identity service")
) -> str:
    """
    Identify the caller.

    Authentication happens upstream; the gateway forwards the verified user
    id in the ``X-User-ID`` header.
    """
    return x_user_id
