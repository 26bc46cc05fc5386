"""Expiring caches for resolved authorization data.

Provides:
- The ExpiringCache interface and shared read-through logic
- An in-process backend (default)
- A Redis backend shared between worker processes
"""

from warehouse_authz.core.cache.base import BaseExpiringCache, ExpiringCache
from warehouse_authz.core.cache.memory import MemoryExpiringCache
from warehouse_authz.core.cache.redis import (
    RedisExpiringCache,
    close_redis_pool,
    redis_client,
)


__all__ = [
    "BaseExpiringCache",
    "ExpiringCache",
    "MemoryExpiringCache",
    "RedisExpiringCache",
    "close_redis_pool",
    "redis_client",
]
