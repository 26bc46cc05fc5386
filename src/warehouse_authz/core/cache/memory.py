"""In-process expiring cache."""

import time
from collections.abc import Callable
from typing import TypeVar

from warehouse_authz.core.cache.base import BaseExpiringCache


V = TypeVar("V")


class MemoryExpiringCache(BaseExpiringCache[V]):
    """Dictionary-backed cache with lazy expiry on read.

    Entries are (value, expires_at) pairs on a monotonic clock. Every
    mutation is a single dict operation, so concurrent tasks cannot leave
    an entry half-written. Writes sweep expired entries at most once per
    TTL window, so keys that are never read again do not accumulate.
    """

    def __init__(
        self,
        ttl_seconds: float,
        single_flight: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(ttl_seconds, single_flight=single_flight)
        self._clock = clock
        self._entries: dict[str, tuple[V, float]] = {}
        self._next_sweep = clock() + ttl_seconds

    async def get(self, key: str) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at <= self._clock():
            # Only drop the entry we looked at; a concurrent set may have replaced it
            if self._entries.get(key) is entry:
                self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: V) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries[key] = (value, now + self.ttl_seconds)

    def _sweep(self, now: float) -> None:
        if now < self._next_sweep:
            return
        self._next_sweep = now + self.ttl_seconds
        expired = [k for k, (_, exp) in self._entries.items() if exp <= now]
        for key in expired:
            del self._entries[key]

    async def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    async def invalidate_all(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
