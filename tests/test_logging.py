"""
Tests for structured logging.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from authstore.logging import (
    ContextLogger,
    get_logger,
    get_operation,
    get_session_id,
    log_context,
    setup_logging,
)


class TestLogContext:
    """Tests for context variables."""

    def test_context_is_scoped(self) -> None:
        with log_context(session_id="sess_1", operation="keys.get"):
            assert get_session_id() == "sess_1"
            assert get_operation() == "keys.get"
            with log_context(operation="keys.set"):
                assert get_session_id() == "sess_1"
                assert get_operation() == "keys.set"
            assert get_operation() == "keys.get"

        assert get_session_id() is None
        assert get_operation() is None


class TestLogger:
    """Tests for logger naming and JSON output."""

    def test_names_are_namespaced(self) -> None:
        logger = get_logger("tests.something")
        assert isinstance(logger, ContextLogger)
        assert logger.name == "authstore.tests.something"
        assert get_logger("authstore.cache").name == "authstore.cache"

    def test_json_file_output(self, temp_dir: Path) -> None:
        log_file = temp_dir / "logs" / "authstore.jsonl"
        setup_logging("DEBUG", log_file=log_file, console_output=False)
        try:
            logger = get_logger("authstore.test")
            with log_context(session_id="sess_abc"):
                logger.info("Key write failed", key="pre-key-1", error="disk full")

            for handler in logging.getLogger("authstore").handlers:
                handler.flush()

            record = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
            assert record["message"] == "Key write failed"
            assert record["level"] == "INFO"
            assert record["session_id"] == "sess_abc"
            assert record["extra"]["key"] == "pre-key-1"
            assert record["extra"]["error"] == "disk full"
        finally:
            for handler in logging.getLogger("authstore").handlers:
                handler.close()
            setup_logging()


class TestSetupLogging:
    """Tests for level selection."""

    def test_level_comes_from_settings(self, mock_env_vars: dict[str, str]) -> None:
        try:
            setup_logging(console_output=False)
            assert logging.getLogger("authstore").level == logging.DEBUG
        finally:
            setup_logging()

    def test_explicit_level_overrides_settings(self, mock_env_vars: dict[str, str]) -> None:
        try:
            setup_logging("warning", console_output=False)
            assert logging.getLogger("authstore").level == logging.WARNING
        finally:
            setup_logging()
