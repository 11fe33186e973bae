"""
Celery application running the periodic event sweep.
"""

from celery import Celery
from ..config import get_settings

settings = get_settings()

celery_app = Celery(
    "campus_events",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["campus_events.tasks.sweep_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # A sweep touches every event; one at a time per worker is enough.
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
    task_soft_time_limit=int(settings.sweep_interval_seconds * 2),
    task_time_limit=int(settings.sweep_interval_seconds * 3),
    result_expires=3600,
    task_routes={"sweep_events_task": {"queue": "sweeps"}},
)

# Live broadcasts and countdown reminders also fire when the event list is
# read; the periodic sweep covers quiet periods. A sweep still queued when the
# next one is due is dropped rather than run late.
celery_app.conf.beat_schedule = {
    "sweep-events": {
        "task": "sweep_events_task",
        "schedule": settings.sweep_interval_seconds,
        "options": {"expires": settings.sweep_interval_seconds},
    },
}
