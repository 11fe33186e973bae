"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campus_events.config import settings
from campus_events.api import api_router
from campus_events.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from campus_events.middleware.error_handler import campus_events_error_handler
from campus_events.utils.dependencies import close_scheduler, create_scheduler
from campus_events.utils.exceptions import CampusEventsError
from campus_events.utils.logging_config import setup_logging

setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file="logs/campus_events.log" if settings.environment == "production" else None,
    enable_json_logging=settings.enable_json_logging or settings.environment == "production",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Campus Events API")
    owns_scheduler = getattr(app.state, "scheduler", None) is None
    if owns_scheduler:
        app.state.scheduler = await create_scheduler(settings)
    yield
    logger.info("Shutting down Campus Events API")
    if owns_scheduler:
        await close_scheduler(app.state.scheduler)
        app.state.scheduler = None


app = FastAPI(
    title="Campus Events API",
    description="""
    ## Campus Events

    Scheduling and allocation engine for campus events.

    * **Events**: venue and resource conflict checks on create and edit
    * **Tickets**: dense seat numbering with a FIFO waitlist and automatic promotion
    * **Volunteers**: exclusive roles assigned through organizer invitations
    * **Notifications**: per-user inbox fed by every scheduling side effect

    Callers are identified by the `X-User-ID` header set by the gateway.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "users", "description": "User references from the identity service"},
        {"name": "events", "description": "Event lifecycle and media references"},
        {"name": "tickets", "description": "Seat booking and cancellation"},
        {"name": "waitlist", "description": "Waitlist for full events"},
        {"name": "volunteers", "description": "Volunteer invitations and roster"},
        {"name": "notifications", "description": "Notification inbox"},
        {"name": "health", "description": "System health"},
    ],
    lifespan=lifespan,
)

app.add_exception_handler(CampusEventsError, campus_events_error_handler)

if settings.enable_request_logging:
    app.add_middleware(LoggingMiddleware)

app.add_middleware(ErrorHandlerMiddleware, debug=settings.debug)

if settings.debug:
    # Credentials cannot be combined with wildcard origins
    cors_origins = ["*"]
    cors_allow_credentials = False
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers
)

app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """Basic information about the API."""
    return {
        "message": "Campus Events API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "campus-events"}
