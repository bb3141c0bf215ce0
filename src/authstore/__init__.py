"""
authstore - durable, cached auth state for messaging protocol sessions.
"""

from authstore.auth import (
    AuthState,
    AuthStateDeps,
    AuthStateManager,
    SignalKeyStore,
    open_auth_state,
    use_sqlite_auth_state,
)
from authstore.codec import BufferJSONCodec
from authstore.types import KeyCategory

__version__ = "0.1.0"

__all__ = [
    "AuthState",
    "AuthStateDeps",
    "AuthStateManager",
    "BufferJSONCodec",
    "KeyCategory",
    "SignalKeyStore",
    "open_auth_state",
    "use_sqlite_auth_state",
    "__version__",
]
