"""Expiring cache abstraction.

Backends store values under string keys for a fixed time window. Reads of
an expired entry behave exactly like a miss. Concurrent writers follow
last-writer-wins; callers never need their own locking.
"""

import asyncio
import weakref
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Generic, Protocol, TypeVar


V = TypeVar("V")


class ExpiringCache(Protocol[V]):
    """Interface shared by every cache backend."""

    ttl_seconds: float

    async def get(self, key: str) -> V | None: ...

    async def set(self, key: str, value: V) -> None: ...

    async def invalidate(self, key: str) -> None: ...

    async def invalidate_all(self) -> None: ...

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[V]]) -> V: ...


class BaseExpiringCache(ABC, Generic[V]):
    """Common read-through logic for cache backends.

    With single_flight disabled, concurrent misses on the same key each run
    the loader and the last one to finish wins. With single_flight enabled,
    concurrent misses within this process wait on one loader per key.
    """

    def __init__(self, ttl_seconds: float, single_flight: bool = False) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.single_flight = single_flight
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @abstractmethod
    async def get(self, key: str) -> V | None:
        """Return the live value for key, or None on miss or expiry."""

    @abstractmethod
    async def set(self, key: str, value: V) -> None:
        """Store value under key with a fresh time window."""

    @abstractmethod
    async def invalidate(self, key: str) -> None:
        """Drop a single key."""

    @abstractmethod
    async def invalidate_all(self) -> None:
        """Drop every key owned by this cache."""

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[V]]) -> V:
        """Return the cached value for key, running loader on a miss.

        Loader exceptions propagate and nothing is cached.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        if not self.single_flight:
            return await self._load(key, loader)

        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock

        async with lock:
            # Another waiter may have filled the entry while we queued
            cached = await self.get(key)
            if cached is not None:
                return cached
            return await self._load(key, loader)

    async def _load(self, key: str, loader: Callable[[], Awaitable[V]]) -> V:
        value = await loader()
        await self.set(key, value)
        return value
