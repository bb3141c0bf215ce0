"""
In-memory cache with optional sliding expiry.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

from authstore.cache.base import CacheBackend, CacheStats


@dataclass
class CacheEntry:
    """A cached value and the clock reading of its last read or write."""

    value: Any
    touched_at: float


class MemoryCache(CacheBackend):
    """Dict-backed cache owned by a single auth state manager.

    With ``ttl_seconds`` set, an entry that has not been read or written for
    that long is dropped on its next access and never returned. Capacity is
    unbounded; one session's keyspace is small.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize MemoryCache.

        Args:
            ttl_seconds: Sliding time-to-live. None or 0 disables expiry.
            clock: Monotonic time source, injectable for tests.
        """
        self.ttl_seconds = ttl_seconds or None
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self.stats = CacheStats()

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return self.ttl_seconds is not None and now - entry.touched_at >= self.ttl_seconds

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if self._expired(entry, now):
            del self._entries[key]
            self.stats.expirations += 1
            return None
        entry.touched_at = now
        return entry

    def get(self, key: str) -> Any | None:
        entry = self._live_entry(key)
        if entry is None:
            self.stats.misses += 1
            return None
        self.stats.hits += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, touched_at=self._clock())

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry now. Returns the number removed."""
        if self.ttl_seconds is None:
            return 0
        now = self._clock()
        expired = [k for k, e in self._entries.items() if self._expired(e, now)]
        for key in expired:
            del self._entries[key]
        self.stats.expirations += len(expired)
        return len(expired)

    def __contains__(self, key: object) -> bool:
        # Membership checks do not refresh an entry's expiry.
        if not isinstance(key, str):
            return False
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry, self._clock())

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for e in self._entries.values() if not self._expired(e, now))
