"""
Durable storage package.

Provides AuthStateTable, the single SQLite table behind the auth state store.
"""

from authstore.storage.table import MEMORY_PATH, AuthStateTable

__all__ = ["AuthStateTable", "MEMORY_PATH"]
