"""
Base classes for caching.

The cache sits in front of the durable table and is purely in-memory, so its
interface is synchronous: a cache operation never suspends and never fails.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheStats:
    """Running counters for a cache instance."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups served from the cache."""
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class CacheBackend(ABC):
    """Abstract interface for cache implementations."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Get a value from the cache, or None if absent or expired."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Set a value in the cache."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a value from the cache. Returns whether it was present."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""
        ...
