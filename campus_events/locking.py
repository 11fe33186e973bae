"""
Mutual exclusion for units of work.

Every mutating operation holds a keyed lock while it loads, changes and saves
the snapshot. Event-scoped operations lock ``event:{id}``; operations that
touch the event list as a whole lock ``events``. The local backend serializes
coroutines of one process, the Redis backend serializes workers across
processes.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncContextManager, AsyncIterator, Dict, Optional, Protocol
from uuid import UUID, uuid4

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import Settings
from .utils.exceptions import LockUnavailableError

logger = logging.getLogger(__name__)

EVENTS_LOCK = "events"
USERS_LOCK = "users"


def event_lock_key(event_id: UUID) -> str:
    """Lock key for operations scoped to one event."""
    return f"event:{event_id}"


class LockManager(Protocol):
    """Hands out exclusive, keyed critical sections."""

    def hold(self, key: str) -> AsyncContextManager[None]:
        ...


class LocalLockManager:
    """In-process locks, one ``asyncio.Lock`` per key while anyone holds or awaits it."""

    def __init__(self, wait_seconds: float = 10):
        self.wait_seconds = wait_seconds
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.wait_seconds)
            except asyncio.TimeoutError:
                logger.warning(f"Timed out waiting for lock {key}")
                raise LockUnavailableError(key)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


class RedisLock:
    """Distributed lock using ``SET NX EX`` and a compare-and-delete release."""

    RELEASE_SCRIPT = """
    if redis.call("GET", KEYS[1]) == ARGV[1] then
        return redis.call("DEL", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, client: Redis, key: str, timeout: int = 30):
        """
        Initialize distributed lock.

        Args:
            client: Redis client
            key: Lock key
            timeout: Lock expiry in seconds, bounds how long a crashed holder blocks others
        """
        self.client = client
        self.key = key
        self.timeout = timeout
        self.identifier = f"{uuid4()}:{id(self)}"

    async def acquire(self, wait_seconds: Optional[float] = None) -> bool:
        """
        Acquire the lock, polling until it is free.

        Args:
            wait_seconds: Maximum time to wait; None waits indefinitely

        Returns:
            True if lock acquired, False if the wait ran out
        """
        end_time = None
        if wait_seconds is not None:
            end_time = datetime.now(timezone.utc) + timedelta(seconds=wait_seconds)

        while True:
            acquired = await self.client.set(self.key, self.identifier, nx=True, ex=self.timeout)
            if acquired:
                return True

            if end_time and datetime.now(timezone.utc) >= end_time:
                return False

            await asyncio.sleep(0.05)

    async def release(self) -> bool:
        """Release the lock if we still own it."""
        try:
            result = await self.client.eval(self.RELEASE_SCRIPT, 1, self.key, self.identifier)
            return bool(result)
        except RedisError as e:
            # The key expires on its own after ``timeout`` seconds.
            logger.warning(f"Failed to release lock {self.key}: {e}")
            return False


class RedisLockManager:
    """Locks shared by every process talking to the same Redis."""

    def __init__(self, client: Redis, timeout: int = 30, wait_seconds: float = 10, prefix: str = "lock:"):
        self.client = client
        self.timeout = timeout
        self.wait_seconds = wait_seconds
        self.prefix = prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisLockManager":
        pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            decode_responses=True,
        )
        return cls(
            Redis(connection_pool=pool),
            timeout=settings.lock_timeout_seconds,
            wait_seconds=settings.lock_wait_seconds,
        )

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = RedisLock(self.client, f"{self.prefix}{key}", self.timeout)
        try:
            acquired = await lock.acquire(self.wait_seconds)
        except RedisError as e:
            logger.error(f"Redis error while acquiring lock {key}: {e}")
            raise LockUnavailableError(key) from e
        if not acquired:
            raise LockUnavailableError(key)
        try:
            yield
        finally:
            await lock.release()

    async def close(self) -> None:
        await self.client.aclose()


def build_lock_manager(settings: Settings):
    """Create the lock backend selected by ``settings.lock_backend``."""
    if settings.lock_backend == "redis":
        logger.info("Using Redis locks")
        return RedisLockManager.from_settings(settings)
    return LocalLockManager(wait_seconds=settings.lock_wait_seconds)
