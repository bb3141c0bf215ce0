"""
Auth state manager.

Composes the codec, the durable table and the cache into the surface a
messaging protocol library consumes: a credential object bootstrapped once
per session, batched key get/set addressed by (category, id), credential
saving, and a full session reset.

Reads go cache -> table -> decode -> cache. Writes go encode -> table ->
cache, so the cache never holds a value that failed to persist.
"""

from __future__ import annotations

import asyncio
import copy
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

from authstore.cache import CacheBackend, MemoryCache
from authstore.codec import BufferJSONCodec
from authstore.config import Settings, get_settings
from authstore.exceptions import (
    AuthStoreError,
    BatchWriteError,
    DecodeError,
    InitializationError,
    ResetError,
    StorageError,
)
from authstore.logging import get_logger, log_context
from authstore.storage import AuthStateTable
from authstore.types import (
    CREDS_KEY,
    Codec,
    KeyCategory,
    KeyData,
    KeyId,
    composite_key,
    generate_id,
)

logger = get_logger(__name__)


class SignalKeyStore:
    """The ``keys`` half of the runtime auth state: batched get and set."""

    def __init__(self, manager: AuthStateManager) -> None:
        self._manager = manager

    async def get(self, category: str | KeyCategory, ids: Iterable[KeyId]) -> dict[str, Any | None]:
        """Load key records; see AuthStateManager.get_keys()."""
        return await self._manager.get_keys(category, ids)

    async def set(self, data: KeyData) -> None:
        """Write or delete key records; see AuthStateManager.set_keys()."""
        await self._manager.set_keys(data)


@dataclass
class AuthState:
    """Runtime auth state handed to the protocol library."""

    creds: Any
    keys: SignalKeyStore


def identity_transform(category: str, value: Any) -> Any:
    """Default key transform: return the decoded value unchanged."""
    return value


@dataclass(frozen=True)
class AuthStateDeps:
    """Collaborators injected into the auth state manager.

    Attributes:
        bootstrap: Zero-argument factory minting a fresh credential object.
        codec: Serializer with ``encode`` and ``decode``.
        key_transform: ``(category, value) -> value`` applied to
            app-state-sync-key records before they are returned.
    """

    bootstrap: Callable[[], Any]
    codec: Codec = field(default_factory=BufferJSONCodec)
    key_transform: Callable[[str, Any], Any] = identity_transform


class AuthStateManager:
    """Cached, durable store for one session's credentials and keys.

    Each manager owns its table handle and its cache, so several sessions can
    live in one process. Not safe for reset_session() racing with in-flight
    reads or writes.
    """

    def __init__(
        self,
        table: AuthStateTable,
        cache: CacheBackend,
        deps: AuthStateDeps,
        *,
        session_id: str | None = None,
    ) -> None:
        """Initialize AuthStateManager.

        Args:
            table: Opened durable table.
            cache: Cache instance owned by this manager.
            deps: Injected bootstrap factory, codec and key transform.
            session_id: ID attached to log records. Generated if omitted.
        """
        self.table = table
        self.cache = cache
        self.deps = deps
        self.session_id = session_id or generate_id("sess")
        self.keys = SignalKeyStore(self)
        self._creds: Any = None
        self._initialized = False
        # Bumped on every write/delete of a key; a read-through only fills the
        # cache if no write to its key started while it awaited the table.
        self._generations: defaultdict[str, int] = defaultdict(int)

    async def __aenter__(self) -> AuthStateManager:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def initialized(self) -> bool:
        """Whether credentials have been loaded or bootstrapped."""
        return self._initialized

    @property
    def credentials(self) -> Any:
        """The in-memory credential object."""
        if not self._initialized:
            raise RuntimeError("AuthStateManager not initialized. Call initialize() first.")
        return self._creds

    @property
    def state(self) -> AuthState:
        """Runtime auth state: credentials plus the key store."""
        return AuthState(creds=self.credentials, keys=self.keys)

    async def close(self) -> None:
        """Close the underlying table."""
        await self.table.close()

    # -------- Read/write primitives --------

    async def _read_value(self, key: str) -> Any | None:
        cached = self.cache.get(key)
        if cached is not None:
            return copy.deepcopy(cached)

        generation = self._generations[key]
        text = await self.table.get(key)
        if text is None:
            return None

        value = self._decode(key, text)
        if self._generations[key] == generation:
            self.cache.set(key, value)
            logger.debug("Loaded record into cache", key=key)
        else:
            logger.debug("Skipped cache fill after concurrent write", key=key)
        return copy.deepcopy(value)

    def _decode(self, key: str, text: str) -> Any:
        try:
            return self.deps.codec.decode(text)
        except AuthStoreError:
            raise
        except Exception as e:
            raise DecodeError(
                "Stored value cannot be decoded", {"key": key, "reason": str(e)}
            ) from e

    async def _write_value(self, key: str, value: Any) -> None:
        self._generations[key] += 1
        text = self.deps.codec.encode(value)
        # Cache the decoded form of exactly what is persisted; decoding first
        # means a codec failure leaves both table and cache untouched.
        decoded = self._decode(key, text)
        await self.table.upsert(key, text)
        self.cache.set(key, decoded)

    async def _remove_value(self, key: str) -> None:
        self._generations[key] += 1
        await self.table.delete(key)
        was_cached = self.cache.delete(key)
        logger.debug("Deleted record", key=key, was_cached=was_cached)

    # -------- Public operations --------

    async def initialize(self, bootstrap: Callable[[], Any] | None = None) -> Any:
        """Load the credential object, minting and persisting one if absent.

        Args:
            bootstrap: Factory overriding ``deps.bootstrap`` for this call.
                May return an awaitable.

        Returns:
            The credential object.

        Raises:
            StorageError: If the credential record cannot be read or written.
            DecodeError: If the stored credential record is corrupt.
            InitializationError: If the bootstrap factory is unusable.
        """
        with log_context(session_id=self.session_id, operation="initialize"):
            creds = await self._read_value(CREDS_KEY)

            if creds is None:
                factory = bootstrap or self.deps.bootstrap
                if not callable(factory):
                    raise InitializationError("Bootstrap factory is not callable")

                creds = factory()
                if inspect.isawaitable(creds):
                    creds = await creds
                if creds is None:
                    raise InitializationError("Bootstrap factory returned None")

                await self._write_value(CREDS_KEY, creds)
                logger.info("Bootstrapped new credentials")
            else:
                logger.info("Loaded stored credentials")

            self._creds = creds
            self._initialized = True
            return creds

    async def get_keys(
        self,
        category: str | KeyCategory,
        ids: Iterable[KeyId],
    ) -> dict[str, Any | None]:
        """Load key records for a category.

        The result has exactly one entry per requested id (as ``str``);
        missing records map to None. A record that cannot be read or decoded
        also maps to None and is logged, without affecting the other ids.

        Args:
            category: Key category (e.g. "pre-key").
            ids: Identifiers to load.

        Returns:
            Mapping of id to decoded value or None.
        """
        name = category.value if isinstance(category, KeyCategory) else category
        id_list = list(ids)

        async def load(key_id: KeyId) -> Any | None:
            key = composite_key(name, key_id)
            try:
                value = await self._read_value(key)
                if value is not None and name == KeyCategory.APP_STATE_SYNC_KEY.value:
                    value = self._transform(name, value, key)
                return value
            except (DecodeError, StorageError) as e:
                logger.error("Key lookup failed", key=key, error=str(e))
                return None

        with log_context(session_id=self.session_id, operation="keys.get"):
            values = await asyncio.gather(*(load(key_id) for key_id in id_list))

        return {str(key_id): value for key_id, value in zip(id_list, values)}

    def _transform(self, category: str, value: Any, key: str) -> Any:
        try:
            return self.deps.key_transform(category, value)
        except Exception as e:
            raise DecodeError(
                "Key transform rejected stored value", {"key": key, "reason": str(e)}
            ) from e

    async def set_keys(self, data: KeyData) -> None:
        """Write or delete key records.

        A None value deletes the record from table and cache; any other value
        (including empty containers, 0 and "") is persisted. Every entry is
        attempted; if some fail, the rest are still applied and a
        BatchWriteError listing the failures is raised afterwards.

        Args:
            data: Mapping of category -> id -> value or None.

        Raises:
            BatchWriteError: If one or more entries could not be applied.
        """
        entries = [
            (composite_key(category, key_id), value)
            for category, by_id in data.items()
            for key_id, value in by_id.items()
        ]

        with log_context(session_id=self.session_id, operation="keys.set"):
            results = await asyncio.gather(
                *(
                    self._remove_value(key) if value is None else self._write_value(key, value)
                    for key, value in entries
                ),
                return_exceptions=True,
            )

            failures: dict[str, Exception] = {}
            for (key, _), result in zip(entries, results):
                if isinstance(result, Exception):
                    logger.error("Key write failed", key=key, error=str(result))
                    failures[key] = result

            if failures:
                raise BatchWriteError(
                    f"{len(failures)} of {len(entries)} key writes failed",
                    failures,
                    {"failed_keys": sorted(failures)},
                )

            logger.debug("Applied key writes", count=len(entries))

    async def save_creds(self) -> None:
        """Persist the current in-memory credential object.

        Raises:
            StorageError: If the write fails.
        """
        creds = self.credentials
        with log_context(session_id=self.session_id, operation="save_creds"):
            await self._write_value(CREDS_KEY, creds)
            logger.debug("Saved credentials")

    async def reset_session(self) -> None:
        """Clear every record, including the credentials, from table and cache.

        The cache is cleared even when clearing the table fails. Call
        initialize() afterwards to mint new credentials.

        Raises:
            ResetError: If the table could not be cleared.
        """
        with log_context(session_id=self.session_id, operation="reset"):
            table_error: StorageError | None = None
            try:
                await self.table.clear()
            except StorageError as e:
                logger.error("Clearing auth state table failed", error=str(e))
                table_error = e

            self.cache.clear()
            self._creds = None
            self._initialized = False

            if table_error is not None:
                raise ResetError(
                    "Session reset could not clear storage", table_error.context
                ) from table_error

            logger.info("Session reset")


def _validate_deps(deps: AuthStateDeps) -> None:
    if not callable(getattr(deps, "bootstrap", None)):
        raise InitializationError("deps.bootstrap must be callable")

    codec = getattr(deps, "codec", None)
    if not callable(getattr(codec, "encode", None)) or not callable(getattr(codec, "decode", None)):
        raise InitializationError("deps.codec must provide callable encode and decode")

    if not callable(getattr(deps, "key_transform", None)):
        raise InitializationError("deps.key_transform must be callable")


async def open_auth_state(
    storage_path: str | Path | None,
    deps: AuthStateDeps,
    *,
    settings: Settings | None = None,
) -> AuthStateManager:
    """Validate dependencies, open storage, and build a manager.

    The returned manager is opened but not initialized; call initialize()
    to load or mint credentials.

    Args:
        storage_path: SQLite file path, or ":memory:". None uses
            settings.AUTH_STATE_DB_PATH.
        deps: Injected collaborators.
        settings: SQLite and cache settings. Defaults to get_settings().

    Raises:
        InitializationError: On invalid arguments or unopenable storage.
    """
    settings = settings or get_settings()
    if storage_path is None:
        storage_path = settings.AUTH_STATE_DB_PATH

    if not isinstance(storage_path, (str, Path)) or not str(storage_path).strip():
        raise InitializationError(
            "Invalid storage path: expected a database file path", {"storage_path": storage_path}
        )
    _validate_deps(deps)

    table = AuthStateTable(
        storage_path,
        journal_mode=settings.AUTH_SQLITE_JOURNAL_MODE,
        synchronous=settings.AUTH_SQLITE_SYNCHRONOUS,
        cache_size_kb=settings.AUTH_SQLITE_CACHE_SIZE_KB,
    )
    await table.open()

    cache = MemoryCache(ttl_seconds=settings.cache_ttl_seconds)
    return AuthStateManager(table, cache, deps)


async def use_sqlite_auth_state(
    storage_path: str | Path | None,
    deps: AuthStateDeps,
    *,
    settings: Settings | None = None,
) -> AuthStateManager:
    """Open a store and initialize its credentials in one call.

    Raises:
        InitializationError: On invalid arguments or unopenable storage.
        StorageError: If the credential record cannot be read or written.
    """
    manager = await open_auth_state(storage_path, deps, settings=settings)
    try:
        await manager.initialize()
    except BaseException:
        await manager.close()
        raise
    return manager
