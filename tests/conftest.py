"""
Pytest configuration and fixtures for auth state store tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, AsyncGenerator, Generator
from unittest.mock import patch

import pytest

from authstore.auth import AuthStateDeps, AuthStateManager, open_auth_state
from authstore.config import Settings, clear_settings_cache


def make_creds() -> dict[str, Any]:
    """Minimal credential object with binary key material."""
    return {
        "registered": False,
        "registrationId": 4242,
        "noiseKey": {"private": os.urandom(32), "public": os.urandom(32)},
        "advSecretKey": "c2VjcmV0",
    }


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "AUTH_STATE_DB_PATH": str(temp_dir / "env" / "auth.db"),
        "AUTH_CACHE_TTL_SECONDS": "300",
        "AUTH_SQLITE_JOURNAL_MODE": "wal",
        "AUTH_SQLITE_SYNCHRONOUS": "FULL",
        "AUTH_SQLITE_CACHE_SIZE_KB": "2000",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, AUTH_STATE_DB_PATH=temp_dir / "auth_state.db")


@pytest.fixture
def deps() -> AuthStateDeps:
    """Default dependencies with a binary-bearing bootstrap factory."""
    return AuthStateDeps(bootstrap=make_creds)


@pytest.fixture
async def manager(
    settings: Settings, deps: AuthStateDeps
) -> AsyncGenerator[AuthStateManager, None]:
    """Open, initialized manager on a file-backed database."""
    mgr = await open_auth_state(settings.AUTH_STATE_DB_PATH, deps, settings=settings)
    await mgr.initialize()
    yield mgr
    await mgr.close()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
