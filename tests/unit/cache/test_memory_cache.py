"""Unit tests for the in-process expiring cache."""

import asyncio

import pytest

from warehouse_authz.core.cache import MemoryExpiringCache


pytestmark = pytest.mark.unit


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryExpiringCache[str]:
    return MemoryExpiringCache(60, clock=clock)


class TestMemoryExpiringCache:
    """Tests for get/set/invalidate and expiry."""

    async def test_get_missing_key(self, cache):
        assert await cache.get("7") is None

    async def test_set_then_get(self, cache):
        await cache.set("7", "value")

        assert await cache.get("7") == "value"

    async def test_entry_live_until_ttl(self, cache, clock):
        await cache.set("7", "value")
        clock.advance(59.9)

        assert await cache.get("7") == "value"

    async def test_expired_entry_is_a_miss(self, cache, clock):
        """Reads at or after the deadline behave like a miss and evict."""
        await cache.set("7", "value")
        clock.advance(60)

        assert await cache.get("7") is None
        assert len(cache) == 0

    async def test_set_renews_window(self, cache, clock):
        await cache.set("7", "old")
        clock.advance(50)
        await cache.set("7", "new")
        clock.advance(50)

        assert await cache.get("7") == "new"

    async def test_invalidate_single_key(self, cache):
        await cache.set("7", "a")
        await cache.set("8", "b")

        await cache.invalidate("7")

        assert await cache.get("7") is None
        assert await cache.get("8") == "b"

    async def test_invalidate_missing_key_is_noop(self, cache):
        await cache.invalidate("nope")

        assert len(cache) == 0

    async def test_invalidate_all(self, cache):
        await cache.set("7", "a")
        await cache.set("8", "b")

        await cache.invalidate_all()

        assert len(cache) == 0

    async def test_set_sweeps_unread_expired_entries(self, cache, clock):
        await cache.set("7", "a")
        await cache.set("8", "b")
        clock.advance(61)

        await cache.set("9", "c")

        assert len(cache) == 1
        assert await cache.get("9") == "c"

    async def test_sweep_keeps_live_entries(self, cache, clock):
        await cache.set("7", "a")
        clock.advance(30)
        await cache.set("8", "b")
        clock.advance(35)

        await cache.set("9", "c")

        assert len(cache) == 2
        assert await cache.get("8") == "b"

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError, match="positive"):
            MemoryExpiringCache(0)


class TestGetOrLoad:
    """Tests for the read-through path."""

    async def test_loader_runs_once_within_window(self, cache):
        calls = 0

        async def loader() -> str:
            nonlocal calls
            calls += 1
            return "loaded"

        assert await cache.get_or_load("7", loader) == "loaded"
        assert await cache.get_or_load("7", loader) == "loaded"
        assert calls == 1

    async def test_loader_runs_again_after_expiry(self, cache, clock):
        calls = 0

        async def loader() -> str:
            nonlocal calls
            calls += 1
            return f"load-{calls}"

        await cache.get_or_load("7", loader)
        clock.advance(61)

        assert await cache.get_or_load("7", loader) == "load-2"

    async def test_loader_error_is_not_cached(self, cache):
        async def failing() -> str:
            raise RuntimeError("store down")

        async def working() -> str:
            return "ok"

        with pytest.raises(RuntimeError):
            await cache.get_or_load("7", failing)

        assert await cache.get("7") is None
        assert await cache.get_or_load("7", working) == "ok"

    async def test_concurrent_misses_without_single_flight(self, cache):
        """Both callers load; the last writer's value stays."""
        calls = 0

        async def loader() -> str:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            return f"load-{calls}"

        await asyncio.gather(
            cache.get_or_load("7", loader),
            cache.get_or_load("7", loader),
        )

        assert calls == 2
        assert await cache.get("7") is not None

    async def test_concurrent_misses_with_single_flight(self, clock):
        cache: MemoryExpiringCache[str] = MemoryExpiringCache(
            60, single_flight=True, clock=clock
        )
        calls = 0

        async def loader() -> str:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            return "loaded"

        results = await asyncio.gather(
            *(cache.get_or_load("7", loader) for _ in range(5))
        )

        assert calls == 1
        assert results == ["loaded"] * 5
