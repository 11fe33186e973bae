"""
Snapshot persistence.

The engine loads and saves the whole snapshot as one unit. Saves carry the
version that was loaded; a save against a newer stored version fails with
``OptimisticLockError`` so the unit of work can retry against fresh state.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .domain.records import Snapshot
from .models.snapshot import EventSnapshotRecord
from .utils.exceptions import OptimisticLockError, PersistenceError

logger = logging.getLogger(__name__)


def dump_snapshot(snapshot: Snapshot) -> Dict[str, Any]:
    """JSON-ready payload of a snapshot, without its version."""
    return snapshot.model_dump(mode="json", exclude={"version"})


def load_snapshot(payload: Dict[str, Any], version: int) -> Snapshot:
    snapshot = Snapshot.model_validate(payload)
    snapshot.version = version
    return snapshot


class EventStore(Protocol):
    """Loads and saves the engine snapshot."""

    async def load(self) -> Snapshot:
        ...

    async def save(self, snapshot: Snapshot) -> Snapshot:
        ...


class InMemoryEventStore:
    """
    Process-local store.

    Snapshots are kept serialized so callers never share mutable state with
    the store, exactly as with the database backend.
    """

    def __init__(self, snapshot: Optional[Snapshot] = None):
        self._payload: Optional[Dict[str, Any]] = None
        self._version = 0
        if snapshot is not None:
            self._payload = dump_snapshot(snapshot)
            self._version = 1

    @property
    def version(self) -> int:
        return self._version

    async def load(self) -> Snapshot:
        if self._payload is None:
            return Snapshot()
        return load_snapshot(self._payload, self._version)

    async def save(self, snapshot: Snapshot) -> Snapshot:
        if snapshot.version != self._version:
            raise OptimisticLockError("snapshot", "memory")
        self._payload = dump_snapshot(snapshot)
        self._version += 1
        snapshot.version = self._version
        return snapshot


class SqlEventStore:
    """Snapshot kept as a JSON document in the ``event_snapshots`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], key: str = "primary"):
        self.session_factory = session_factory
        self.key = key

    async def load(self) -> Snapshot:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(EventSnapshotRecord).where(EventSnapshotRecord.key == self.key)
                )
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load snapshot {self.key}: {e}")
            raise PersistenceError(str(e)) from e

        if record is None:
            return Snapshot()
        return load_snapshot(record.payload, record.version)

    async def save(self, snapshot: Snapshot) -> Snapshot:
        payload = dump_snapshot(snapshot)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    if snapshot.version == 0:
                        session.add(EventSnapshotRecord(key=self.key, version=1, payload=payload))
                    else:
                        result = await session.execute(
                            update(EventSnapshotRecord)
                            .where(
                                EventSnapshotRecord.key == self.key,
                                EventSnapshotRecord.version == snapshot.version,
                            )
                            .values(payload=payload, version=snapshot.version + 1)
                            .execution_options(synchronize_session=False)
                        )
                        if result.rowcount != 1:
                            raise OptimisticLockError("snapshot", self.key)
        except IntegrityError as e:
            # Another writer inserted the first row concurrently.
            raise OptimisticLockError("snapshot", self.key) from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to save snapshot {self.key}: {e}")
            raise PersistenceError(str(e)) from e

        snapshot.version += 1
        logger.debug(f"Saved snapshot {self.key} at version {snapshot.version}")
        return snapshot
