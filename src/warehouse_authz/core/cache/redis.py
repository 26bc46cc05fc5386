"""Redis client management and the Redis-backed expiring cache.

Used when several worker processes should share resolved permissions,
so that one cache bust reaches every worker.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TypeVar

import redis.asyncio as redis
from pydantic import TypeAdapter
from redis.asyncio.connection import ConnectionPool

from warehouse_authz.config import settings
from warehouse_authz.core.cache.base import BaseExpiringCache


V = TypeVar("V")

# Connection pool for efficient connection reuse
_pool: ConnectionPool | None = None


def _get_pool() -> ConnectionPool:
    """Get or create the Redis connection pool."""
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(
            str(settings.redis_url),
            max_connections=50,
            decode_responses=True,
        )
    return _pool


@asynccontextmanager
async def redis_client() -> AsyncGenerator[redis.Redis, None]:  # type: ignore[type-arg]
    """Context manager for Redis client.

    Usage:
        async with redis_client() as client:
            await client.set("key", "value")
    """
    client = redis.Redis(connection_pool=_get_pool())
    try:
        yield client
    finally:
        await client.aclose()


async def close_redis_pool() -> None:
    """Close the Redis connection pool.

    Call this during application shutdown.
    """
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None


class RedisExpiringCache(BaseExpiringCache[V]):
    """Expiring cache stored in Redis with SETEX.

    Values are pydantic-serializable and round-trip through a TypeAdapter,
    so tagged unions come back as the same variant that was stored.
    """

    def __init__(
        self,
        namespace: str,
        adapter: TypeAdapter[V],
        ttl_seconds: float,
        prefix: str = "",
        single_flight: bool = False,
    ) -> None:
        super().__init__(ttl_seconds, single_flight=single_flight)
        self.adapter = adapter
        self.key_prefix = f"{prefix}{namespace}:"

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> V | None:
        async with redis_client() as client:
            data = await client.get(self._key(key))
        if data is None:
            return None
        return self.adapter.validate_json(data)

    async def set(self, key: str, value: V) -> None:
        payload = self.adapter.dump_json(value)
        async with redis_client() as client:
            # Redis expiry granularity is whole seconds
            await client.setex(self._key(key), max(1, int(self.ttl_seconds)), payload)

    async def invalidate(self, key: str) -> None:
        async with redis_client() as client:
            await client.delete(self._key(key))

    async def invalidate_all(self) -> None:
        async with redis_client() as client:
            cursor = 0
            while True:
                cursor, keys = await client.scan(
                    cursor=cursor,
                    match=f"{self.key_prefix}*",
                    count=100,
                )
                if keys:
                    await client.delete(*keys)
                if cursor == 0:
                    break
