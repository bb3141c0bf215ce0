"""
SQLite table of auth state records.

One row per record key, value stored as serialized text. Every operation
commits before returning, and the database runs in WAL mode by default, so a
successful return means the change survives a process restart.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import aiosqlite

from authstore.exceptions import InitializationError, StorageError
from authstore.logging import get_logger

logger = get_logger(__name__)

MEMORY_PATH = ":memory:"


class AuthStateTable:
    """Durable (key, value) table backed by SQLite via aiosqlite.

    Statements run on aiosqlite's single worker thread, so each operation is
    atomic with respect to every other operation on the same table.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        journal_mode: str = "WAL",
        synchronous: str = "NORMAL",
        cache_size_kb: int = 8000,
    ) -> None:
        """Initialize AuthStateTable.

        Args:
            db_path: Path to the SQLite file, or ":memory:".
            journal_mode: SQLite journal_mode pragma.
            synchronous: SQLite synchronous pragma.
            cache_size_kb: SQLite page cache size in KiB.
        """
        self.db_path = str(db_path)
        self.journal_mode = journal_mode
        self.synchronous = synchronous
        self.cache_size_kb = cache_size_kb
        self._db: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        """Whether the connection is open."""
        return self._db is not None

    async def open(self) -> None:
        """Open the database, apply pragmas, and create the schema.

        Safe to call multiple times.

        Raises:
            InitializationError: If the database cannot be opened.
        """
        if self._db:
            return

        try:
            if self.db_path != MEMORY_PATH:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            db = await aiosqlite.connect(self.db_path)
        except (OSError, sqlite3.Error) as e:
            raise InitializationError(
                "Cannot open auth state database", {"db_path": self.db_path, "reason": str(e)}
            ) from e

        try:
            await db.execute(f"PRAGMA journal_mode = {self.journal_mode}")
            await db.execute(f"PRAGMA synchronous = {self.synchronous}")
            await db.execute("PRAGMA temp_store = MEMORY")
            await db.execute(f"PRAGMA cache_size = -{int(self.cache_size_kb)}")

            await db.execute("""
                CREATE TABLE IF NOT EXISTS auth_state (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    key TEXT UNIQUE,
                    value TEXT
                )
            """)
            await db.commit()
        except sqlite3.Error as e:
            await db.close()
            raise InitializationError(
                "Cannot initialize auth state schema", {"db_path": self.db_path, "reason": str(e)}
            ) from e

        self._db = db
        logger.info("Auth state table opened", db_path=self.db_path, journal_mode=self.journal_mode)

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    def _conn(self) -> aiosqlite.Connection:
        if not self._db:
            raise RuntimeError("AuthStateTable not opened. Call open() first.")
        return self._db

    async def upsert(self, key: str, value: str) -> None:
        """Insert or replace the value stored under a key.

        Raises:
            StorageError: If the write fails.
        """
        db = self._conn()
        try:
            await db.execute(
                """
                INSERT INTO auth_state (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            await db.commit()
        except sqlite3.Error as e:
            raise StorageError("Write failed", {"operation": "upsert", "key": key, "reason": str(e)}) from e

    async def get(self, key: str) -> str | None:
        """Get the stored text for a key, or None if absent.

        Raises:
            StorageError: If the read fails.
        """
        db = self._conn()
        try:
            async with db.execute("SELECT value FROM auth_state WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError("Read failed", {"operation": "get", "key": key, "reason": str(e)}) from e

        if row is None:
            return None
        return row[0]

    async def delete(self, key: str) -> None:
        """Delete a key. Deleting an absent key is a no-op.

        Raises:
            StorageError: If the delete fails.
        """
        db = self._conn()
        try:
            await db.execute("DELETE FROM auth_state WHERE key = ?", (key,))
            await db.commit()
        except sqlite3.Error as e:
            raise StorageError("Delete failed", {"operation": "delete", "key": key, "reason": str(e)}) from e

    async def clear(self) -> None:
        """Remove every record.

        Raises:
            StorageError: If the delete fails.
        """
        db = self._conn()
        try:
            await db.execute("DELETE FROM auth_state")
            await db.commit()
        except sqlite3.Error as e:
            raise StorageError("Clear failed", {"operation": "clear", "reason": str(e)}) from e

    async def keys(self) -> list[str]:
        """List all record keys in insertion order.

        Raises:
            StorageError: If the read fails.
        """
        db = self._conn()
        try:
            async with db.execute("SELECT key FROM auth_state ORDER BY id") as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StorageError("Read failed", {"operation": "keys", "reason": str(e)}) from e
        return [row[0] for row in rows]

    async def count(self) -> int:
        """Count stored records.

        Raises:
            StorageError: If the read fails.
        """
        db = self._conn()
        try:
            async with db.execute("SELECT COUNT(*) FROM auth_state") as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError("Read failed", {"operation": "count", "reason": str(e)}) from e
        return row[0] if row else 0
