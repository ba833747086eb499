"""
Unit tests for core.cache module.

Tests:
- set/get round trip and idempotent overwrite
- Expiry at the TTL boundary with purge on read
- Per-entry TTL override and validation
- sweep() removing only expired entries
- Length, membership and delete/clear
"""

import asyncio

import pytest

from nostria.core.cache import CacheEntry, TTLCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache[str]:
    return TTLCache(10.0, name="test", clock=clock)


# ============================================================================
# Construction
# ============================================================================


class TestInit:
    def test_properties(self, cache: TTLCache[str]) -> None:
        assert cache.name == "test"
        assert cache.default_ttl == 10.0
        assert len(cache) == 0

    @pytest.mark.parametrize("ttl", [0, -1.0])
    def test_non_positive_default_ttl_rejected(self, ttl: float) -> None:
        with pytest.raises(ValueError, match="default_ttl"):
            TTLCache(ttl)

    def test_repr(self, cache: TTLCache[str]) -> None:
        cache.set("k", "v")
        assert repr(cache) == "TTLCache(name=test, entries=1, ttl=10.0)"


# ============================================================================
# Set / Get
# ============================================================================


class TestSetGet:
    def test_get_returns_stored_value(self, cache: TTLCache[str]) -> None:
        cache.set("k", "v")
        assert cache.get("k") == "v"

    def test_get_missing_returns_none(self, cache: TTLCache[str]) -> None:
        assert cache.get("missing") is None

    def test_set_is_idempotent(self, cache: TTLCache[str]) -> None:
        cache.set("k", "v")
        cache.set("k", "v")
        assert cache.get("k") == "v"
        assert len(cache) == 1

    def test_last_writer_wins(self, cache: TTLCache[str]) -> None:
        cache.set("k", "first")
        cache.set("k", "second")
        assert cache.get("k") == "second"

    def test_overwrite_refreshes_expiry(self, cache: TTLCache[str], clock: FakeClock) -> None:
        cache.set("k", "v")
        clock.advance(8)
        cache.set("k", "v")
        clock.advance(8)
        assert cache.get("k") == "v"

    def test_entry_records_expiry(self, cache: TTLCache[str], clock: FakeClock) -> None:
        cache.set("k", "v")
        assert cache._entries["k"] == CacheEntry("v", clock.now + 10.0)


# ============================================================================
# Expiry
# ============================================================================


class TestExpiry:
    def test_visible_before_ttl(self, cache: TTLCache[str], clock: FakeClock) -> None:
        cache.set("k", "v")
        clock.advance(9.999)
        assert cache.get("k") == "v"

    def test_expired_at_ttl_boundary(self, cache: TTLCache[str], clock: FakeClock) -> None:
        cache.set("k", "v")
        clock.advance(10.0)
        assert cache.get("k") is None

    def test_expired_read_purges_entry(self, cache: TTLCache[str], clock: FakeClock) -> None:
        cache.set("k", "v")
        cache.set("other", "w")
        clock.advance(11)
        assert len(cache) == 2
        assert cache.get("k") is None
        assert len(cache) == 1

    def test_custom_ttl(self, cache: TTLCache[str], clock: FakeClock) -> None:
        cache.set("short", "v", ttl=1.0)
        cache.set("long", "v", ttl=100.0)
        clock.advance(50)
        assert cache.get("short") is None
        assert cache.get("long") == "v"

    @pytest.mark.parametrize("ttl", [0, -5.0])
    def test_non_positive_ttl_rejected(self, cache: TTLCache[str], ttl: float) -> None:
        with pytest.raises(ValueError, match="ttl"):
            cache.set("k", "v", ttl=ttl)

    async def test_expiry_with_real_clock(self) -> None:
        cache: TTLCache[str] = TTLCache(0.05)
        cache.set("k", "v")
        assert cache.get("k") == "v"
        await asyncio.sleep(0.1)
        assert cache.get("k") is None
        assert len(cache) == 0


# ============================================================================
# Sweep
# ============================================================================


class TestSweep:
    def test_sweep_removes_only_expired(self, cache: TTLCache[str], clock: FakeClock) -> None:
        cache.set("a", "1", ttl=1.0)
        cache.set("b", "2", ttl=5.0)
        cache.set("c", "3", ttl=50.0)
        clock.advance(5.0)

        assert cache.sweep() == 2
        assert len(cache) == 1
        assert cache.get("c") == "3"

    def test_sweep_empty(self, cache: TTLCache[str]) -> None:
        assert cache.sweep() == 0

    def test_sweep_nothing_expired(self, cache: TTLCache[str]) -> None:
        cache.set("a", "1")
        assert cache.sweep() == 0
        assert len(cache) == 1


# ============================================================================
# Container Protocol
# ============================================================================


class TestContainer:
    def test_contains_live_entry(self, cache: TTLCache[str]) -> None:
        cache.set("k", "v")
        assert "k" in cache
        assert "missing" not in cache

    def test_contains_ignores_expired(self, cache: TTLCache[str], clock: FakeClock) -> None:
        cache.set("k", "v")
        clock.advance(10)
        assert "k" not in cache

    def test_delete(self, cache: TTLCache[str]) -> None:
        cache.set("k", "v")
        cache.delete("k")
        cache.delete("never-set")
        assert cache.get("k") is None

    def test_clear(self, cache: TTLCache[str]) -> None:
        cache.set("a", "1")
        cache.set("b", "2")
        cache.clear()
        assert len(cache) == 0
