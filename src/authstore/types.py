"""
Core types for the auth state store.

This module defines the shared data structures used throughout the package:
- KeyCategory enum for the protocol's well-known key categories
- The composite key scheme addressing one key record
- The Codec protocol implemented by value serializers
- Helper functions for ID generation
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Protocol, runtime_checkable

from uuid6 import uuid7

# Reserved record key holding the session credential object.
CREDS_KEY = "creds"

KEY_SEPARATOR = "-"

KeyId = str | int
# category -> id -> value (None means delete)
KeyData = Mapping[str, Mapping[KeyId, Any]]


def generate_id(prefix: str = "") -> str:
    """Generate a time-ordered unique ID using UUID7.

    Args:
        prefix: Optional prefix for the ID (e.g., "sess")

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = str(uuid7())
    return f"{prefix}_{uid}" if prefix else uid


class KeyCategory(str, Enum):
    """Well-known categories of protocol key records."""

    PRE_KEY = "pre-key"
    SESSION = "session"
    SENDER_KEY = "sender-key"
    SENDER_KEY_MEMORY = "sender-key-memory"
    APP_STATE_SYNC_KEY = "app-state-sync-key"
    APP_STATE_SYNC_VERSION = "app-state-sync-version"


def _category_str(category: str | KeyCategory) -> str:
    if isinstance(category, KeyCategory):
        return category.value
    return category


def composite_key(category: str | KeyCategory, key_id: KeyId) -> str:
    """Build the record key for a (category, id) pair.

    The category is escaped so it never contains the separator, which makes
    the first separator in the result unambiguous: ``("pre-key", "1")`` and
    ``("pre", "key-1")`` map to different records.

    Raises:
        ValueError: If the category is empty.
    """
    name = _category_str(category)
    if not name:
        raise ValueError("Key category must be a non-empty string")
    escaped = name.replace("%", "%25").replace(KEY_SEPARATOR, "%2D")
    return f"{escaped}{KEY_SEPARATOR}{key_id}"


def split_composite_key(key: str) -> tuple[str, str]:
    """Inverse of composite_key(); returns (category, id) with id as str.

    Raises:
        ValueError: If the key is not a composite key (e.g. ``"creds"``).
    """
    escaped, sep, key_id = key.partition(KEY_SEPARATOR)
    if not sep or not escaped:
        raise ValueError(f"Not a composite key: {key!r}")
    category = escaped.replace("%2D", KEY_SEPARATOR).replace("%25", "%")
    return category, key_id


@runtime_checkable
class Codec(Protocol):
    """Text serialization used for every stored value."""

    def encode(self, value: Any) -> str: ...

    def decode(self, text: str) -> Any: ...
