"""
Auth state package.

Provides AuthStateManager and the open_auth_state() factory.
"""

from authstore.auth.state import (
    AuthState,
    AuthStateDeps,
    AuthStateManager,
    SignalKeyStore,
    identity_transform,
    open_auth_state,
    use_sqlite_auth_state,
)

__all__ = [
    "AuthState",
    "AuthStateDeps",
    "AuthStateManager",
    "SignalKeyStore",
    "identity_transform",
    "open_auth_state",
    "use_sqlite_auth_state",
]
