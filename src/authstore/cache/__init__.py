"""
Cache package for the in-memory layer.

- CacheBackend: Abstract synchronous cache interface (base.py)
- MemoryCache: Dict-backed cache with optional sliding TTL (memory.py)
"""

from authstore.cache.base import CacheBackend, CacheStats
from authstore.cache.memory import CacheEntry, MemoryCache

__all__ = ["CacheBackend", "CacheEntry", "CacheStats", "MemoryCache"]
