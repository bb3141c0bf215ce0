"""
Custom exception hierarchy for the auth state store.

All exceptions inherit from AuthStoreError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class AuthStoreError(Exception):
    """Base exception for all auth state store errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class InitializationError(AuthStoreError):
    """Raised when the store cannot be constructed.

    Examples:
        - Empty storage path
        - Bootstrap factory or codec functions that are not callable
        - SQLite database that cannot be opened
    """

    pass


class CodecError(AuthStoreError):
    """Base class for serialization failures."""

    pass


class DecodeError(CodecError):
    """Raised when stored text is not a valid serialized value.

    Context should include:
        - reason: What was malformed (JSON syntax, Buffer tag, ...)
        - path: Location of a malformed Buffer tag inside the value
    """

    pass


class EncodeError(CodecError):
    """Raised when a value cannot be serialized."""

    pass


class StorageError(AuthStoreError):
    """Raised when a durable read or write fails.

    Context should include:
        - operation: The table operation (upsert, get, delete, clear)
        - key: The record key, if the operation targets one
    """

    pass


class BatchWriteError(StorageError):
    """Raised after a batch write in which some entries failed.

    Every other entry of the batch has been applied by the time this is
    raised. ``failures`` maps each failed composite key to its exception.
    """

    def __init__(
        self,
        message: str,
        failures: dict[str, Exception],
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)
        self.failures = failures


class ResetError(StorageError):
    """Raised when a session reset could not clear durable storage.

    The in-memory cache has already been cleared when this is raised.
    """

    pass
