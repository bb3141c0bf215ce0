"""
Tests for the in-memory cache layer.
"""

from __future__ import annotations

import pytest

from authstore.cache import CacheBackend, MemoryCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestMemoryCacheBasics:
    """Test get/set/delete/clear without expiry."""

    def test_is_cache_backend(self) -> None:
        assert isinstance(MemoryCache(), CacheBackend)

    def test_set_and_get(self) -> None:
        cache = MemoryCache()
        cache.set("creds", {"registered": False})
        assert cache.get("creds") == {"registered": False}

    def test_missing_returns_none(self) -> None:
        assert MemoryCache().get("nope") is None

    def test_falsy_values_are_cached(self) -> None:
        """Test that empty payloads are stored like any other value."""
        cache = MemoryCache()
        cache.set("a", {})
        cache.set("b", 0)
        cache.set("c", b"")

        assert "a" in cache and "b" in cache and "c" in cache
        assert cache.get("a") == {}
        assert cache.get("b") == 0
        assert cache.get("c") == b""

    def test_delete(self) -> None:
        cache = MemoryCache()
        cache.set("k", 1)

        assert cache.delete("k") is True
        assert cache.delete("k") is False
        assert cache.get("k") is None

    def test_clear(self) -> None:
        cache = MemoryCache()
        for i in range(5):
            cache.set(f"k{i}", i)

        cache.clear()

        assert len(cache) == 0

    def test_no_ttl_never_expires(self, clock: FakeClock) -> None:
        cache = MemoryCache(ttl_seconds=0, clock=clock)
        cache.set("k", 1)
        clock.advance(10**9)
        assert cache.get("k") == 1

    def test_stats(self) -> None:
        cache = MemoryCache()
        cache.set("k", 1)
        cache.get("k")
        cache.get("missing")

        assert cache.stats.hits == 1
        assert cache.stats.misses == 1
        assert cache.stats.hit_rate == 0.5


class TestMemoryCacheExpiry:
    """Test sliding time-to-live behavior."""

    def test_entry_expires_after_ttl(self, clock: FakeClock) -> None:
        cache = MemoryCache(ttl_seconds=60, clock=clock)
        cache.set("k", "v")

        clock.advance(60)

        assert cache.get("k") is None
        assert cache.stats.expirations == 1
        assert len(cache) == 0

    def test_read_refreshes_ttl(self, clock: FakeClock) -> None:
        cache = MemoryCache(ttl_seconds=60, clock=clock)
        cache.set("k", "v")

        clock.advance(45)
        assert cache.get("k") == "v"
        clock.advance(45)

        assert cache.get("k") == "v"

    def test_write_refreshes_ttl(self, clock: FakeClock) -> None:
        cache = MemoryCache(ttl_seconds=60, clock=clock)
        cache.set("k", "v1")
        clock.advance(50)
        cache.set("k", "v2")
        clock.advance(50)

        assert cache.get("k") == "v2"

    def test_contains_respects_expiry(self, clock: FakeClock) -> None:
        cache = MemoryCache(ttl_seconds=10, clock=clock)
        cache.set("k", 1)
        clock.advance(11)
        assert "k" not in cache

    def test_purge_expired(self, clock: FakeClock) -> None:
        cache = MemoryCache(ttl_seconds=10, clock=clock)
        cache.set("old", 1)
        clock.advance(8)
        cache.set("new", 2)
        clock.advance(5)

        assert cache.purge_expired() == 1
        assert cache.get("new") == 2
        assert cache.get("old") is None

    def test_clear_after_expiry(self, clock: FakeClock) -> None:
        cache = MemoryCache(ttl_seconds=1, clock=clock)
        cache.set("a", 1)
        clock.advance(5)
        cache.set("b", 2)

        cache.clear()

        assert len(cache) == 0
        assert cache.get("b") is None
