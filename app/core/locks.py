"""Per-key mutual exclusion for booking and host-balance writers.

Bookings are locked on ``booking:{id}``, host earning pools on ``host:{id}``
and room calendars on ``room:{id}``. The local manager serializes coroutines
inside one process; the Redis manager serializes across API workers and
Celery.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import LockError, RedisError

from app.core.exceptions import PersistenceError, StateConflictError

logger = logging.getLogger(__name__)


def booking_lock_key(booking_id: object) -> str:
    return f"booking:{booking_id}"


def host_lock_key(host_id: object) -> str:
    return f"host:{host_id}"


def room_lock_key(room_id: object) -> str:
    return f"room:{room_id}"


class LockManager(Protocol):
    def acquire(self, key: str) -> AbstractAsyncContextManager[None]: ...


class LocalLockManager:
    """In-process lock registry keyed by resource name."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                # Drop idle locks so the registry does not grow per booking
                del self._waiters[key]
                self._locks.pop(key, None)

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()


class RedisLockManager:
    """Distributed lock using redis-py's Lock (SET NX PX + token release)."""

    def __init__(
        self,
        redis_url: str,
        timeout: int = 30,
        blocking_timeout: float = 10.0,
        prefix: str = "roomledger:lock",
    ) -> None:
        self.redis_url = redis_url
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.prefix = prefix
        self._redis: redis.Redis | None = None

    def get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url)
        return self._redis

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[None]:
        lock = self.get_redis().lock(
            f"{self.prefix}:{key}",
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            raise PersistenceError(f"lock service error: {e}") from e
        if not acquired:
            raise StateConflictError(f"Resource {key} is busy, please retry")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Expired while held; the conditional updates still guard the data
                logger.warning(f"Lock {key} expired before release")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
