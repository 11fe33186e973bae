"""
Celery tasks for time-based event transitions.
"""

import asyncio
import logging
from typing import Any, Dict

from .celery_app import celery_app
from ..config import get_settings
from ..utils.dependencies import close_scheduler, create_scheduler

logger = logging.getLogger(__name__)


async def run_sweep() -> Dict[str, Any]:
    """Build a scheduler from settings, sweep once and release it."""
    scheduler = await create_scheduler(get_settings())
    try:
        fired = await scheduler.sweep()
    finally:
        await close_scheduler(scheduler)
    return {"fired": fired}


@celery_app.task(name="sweep_events_task")
def sweep_events_task():
    """
    Periodic task firing live broadcasts and countdown reminders.

    Each marker is recorded on its event, so overlapping or repeated runs
    never notify twice.
    """
    logger.info("Starting event sweep task")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        result = loop.run_until_complete(run_sweep())
    except Exception as e:
        logger.error(f"Error in event sweep task: {e}")
        raise
    finally:
        loop.close()

    logger.info(f"Event sweep fired {result['fired']} notifications")
    return result
