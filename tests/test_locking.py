"""
Test keyed locks for units of work.
"""
import asyncio
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from campus_events.config import Settings
from campus_events.locking import (
    LocalLockManager,
    RedisLock,
    RedisLockManager,
    build_lock_manager,
    event_lock_key,
)
from campus_events.utils.exceptions import LockUnavailableError


class FakeRedis:
    """Just enough of the asyncio Redis client for lock tests."""

    def __init__(self, fail: bool = False):
        self.values = {}
        self.fail = fail
        self.closed = False

    async def set(self, key, value, nx=False, ex=None):
        if self.fail:
            raise RedisConnectionError("redis is down")
        if nx and key in self.values:
            return None
        self.values[key] = value
        return True

    async def eval(self, script, numkeys, key, identifier):
        if self.values.get(key) == identifier:
            del self.values[key]
            return 1
        return 0

    async def aclose(self):
        self.closed = True


class TestLocalLockManager:
    """Test in-process locks."""

    async def test_same_key_is_serialized(self):
        locks = LocalLockManager()
        trace = []

        async def worker(name):
            async with locks.hold("event:1"):
                trace.append(f"{name}-in")
                await asyncio.sleep(0.01)
                trace.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert trace in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])

    async def test_different_keys_do_not_block(self):
        locks = LocalLockManager(wait_seconds=0.05)

        async with locks.hold("event:1"):
            async with locks.hold("event:2"):
                pass

    async def test_wait_timeout(self):
        locks = LocalLockManager(wait_seconds=0.01)

        async with locks.hold("events"):
            with pytest.raises(LockUnavailableError):
                async with locks.hold("events"):
                    pass

    async def test_lock_released_after_error(self):
        locks = LocalLockManager(wait_seconds=0.05)

        with pytest.raises(RuntimeError):
            async with locks.hold("events"):
                raise RuntimeError("boom")

        async with locks.hold("events"):
            pass

    async def test_idle_keys_are_forgotten(self):
        locks = LocalLockManager(wait_seconds=0.05)

        for _ in range(3):
            async with locks.hold(event_lock_key(uuid4())):
                pass

        assert locks._locks == {}

    async def test_key_kept_while_a_waiter_remains(self):
        locks = LocalLockManager()
        entered = asyncio.Event()

        async def second():
            async with locks.hold("events"):
                entered.set()

        async with locks.hold("events"):
            waiter = asyncio.create_task(second())
            await asyncio.sleep(0)
        assert "events" in locks._locks

        await waiter
        assert entered.is_set()
        assert locks._locks == {}

    async def test_timed_out_waiter_leaves_no_entry(self):
        locks = LocalLockManager(wait_seconds=0.01)

        async with locks.hold("events"):
            with pytest.raises(LockUnavailableError):
                async with locks.hold("events"):
                    pass
            assert "events" in locks._locks

        assert locks._locks == {}


class TestRedisLockManager:
    """Test the distributed backend against a fake client."""

    async def test_lock_key_is_prefixed_and_released(self):
        client = FakeRedis()
        locks = RedisLockManager(client, wait_seconds=0.1)
        key = event_lock_key(uuid4())

        async with locks.hold(key):
            assert list(client.values) == [f"lock:{key}"]

        assert client.values == {}

    async def test_held_lock_times_out(self):
        client = FakeRedis()
        locks = RedisLockManager(client, wait_seconds=0.1)

        async with locks.hold("events"):
            with pytest.raises(LockUnavailableError):
                async with locks.hold("events"):
                    pass

    async def test_release_only_deletes_own_token(self):
        client = FakeRedis()
        lock = RedisLock(client, "lock:events")
        assert await lock.acquire(wait_seconds=0)

        client.values["lock:events"] = "someone-else"

        assert await lock.release() is False
        assert client.values["lock:events"] == "someone-else"

    async def test_redis_failure_is_lock_unavailable(self):
        locks = RedisLockManager(FakeRedis(fail=True), wait_seconds=0.1)

        with pytest.raises(LockUnavailableError):
            async with locks.hold("events"):
                pass

    async def test_close_closes_client(self):
        client = FakeRedis()

        await RedisLockManager(client).close()

        assert client.closed


class TestBuildLockManager:
    """Test backend selection."""

    def test_local_backend(self):
        locks = build_lock_manager(Settings(lock_backend="local", lock_wait_seconds=3))

        assert isinstance(locks, LocalLockManager)
        assert locks.wait_seconds == 3

    def test_redis_backend(self):
        locks = build_lock_manager(Settings(lock_backend="redis", redis_url="redis://localhost:6379/5"))

        assert isinstance(locks, RedisLockManager)
