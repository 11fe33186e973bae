"""
Async engine and session factory for the snapshot table.

PostgreSQL (asyncpg) is the production backend; SQLite (aiosqlite) serves
local runs and tests. Only server databases get a connection pool.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import Settings, get_settings
from .models.base import Base

logger = logging.getLogger(__name__)

# Process-wide engine owned by ``init_database`` / ``close_database``.
engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def engine_options(url: str, settings: Settings) -> Dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` suited to the URL's backend."""
    backend = make_url(url)
    options: Dict[str, Any] = {"echo": settings.debug}

    if backend.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    if backend.get_driver_name() == "asyncpg":
        options["connect_args"] = {"server_settings": {"application_name": "campus_events"}}
    return options


def create_database_engine(settings: Optional[Settings] = None, database_url: Optional[str] = None) -> AsyncEngine:
    settings = settings or get_settings()
    url = database_url or settings.database_url
    return create_async_engine(url, **engine_options(url, settings))


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Snapshot payloads are read after commit, so keep loaded attributes.
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def create_tables(bind: AsyncEngine) -> None:
    """Create missing tables; existing ones are left untouched."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database(
    settings: Optional[Settings] = None, database_url: Optional[str] = None
) -> async_sessionmaker[AsyncSession]:
    """Open the process-wide engine, ensure the schema and return a session factory."""
    global engine, async_session_factory

    engine = create_database_engine(settings, database_url)
    async_session_factory = create_session_factory(engine)
    await create_tables(engine)

    logger.info(f"Snapshot database ready at {engine.url.render_as_string(hide_password=True)}")
    return async_session_factory


async def close_database() -> None:
    """Dispose of the process-wide engine, if one is open."""
    global engine, async_session_factory

    if engine is not None:
        await engine.dispose()
        logger.info("Snapshot database connections closed")
    engine = None
    async_session_factory = None
