"""
Redis Configuration

Async Redis client and the distributed lock used to serialize submissions
against a single backing store.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from redis.asyncio import Redis, from_url
from redis.exceptions import LockError

from app.core.config import settings

logger = logging.getLogger(__name__)

# Redis client instance
redis_client: Redis | None = None

# Process-local locks (fallback when Redis is unavailable)
_local_locks: dict[str, asyncio.Lock] = {}


class StoreLockError(Exception):
    """Raised when the store lock cannot be acquired or released."""


async def init_redis() -> Redis:
    """
    Initialize Redis connection.

    Call this on application startup.
    """
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Test connection before publishing the client
    await client.ping()
    redis_client = client
    return redis_client


def is_redis_available() -> bool:
    """Check if Redis client is initialized and available."""
    return redis_client is not None


async def close_redis() -> None:
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.close()
        redis_client = None


@asynccontextmanager
async def store_lock(name: str) -> AsyncIterator[None]:
    """
    Hold an exclusive lock named after a backing store.

    Uses a Redis lock when Redis is connected, so every API worker shares
    it. Without Redis, falls back to an in-process asyncio.Lock, which only
    serializes requests within this worker.

    Raises:
        StoreLockError: If the Redis lock cannot be acquired in time.
    """
    key = f"lock:store:{name}"

    if redis_client is None:
        lock = _local_locks.setdefault(key, asyncio.Lock())
        async with lock:
            yield
        return

    lock = redis_client.lock(
        key,
        timeout=settings.lock_timeout_seconds,
        blocking_timeout=settings.lock_blocking_timeout_seconds,
    )
    acquired = await lock.acquire()
    if not acquired:
        raise StoreLockError(f"Timed out waiting for lock {key}")

    try:
        yield
    finally:
        try:
            await lock.release()
        except LockError as e:
            # Lock expired while held; the next holder may already own it
            logger.warning(f"Failed to release lock {key}: {e}")
