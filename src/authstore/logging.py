"""
Structured logging for the auth state store.

Every record carries the session it belongs to and the store operation that
emitted it (initialize, keys.get, keys.set, save_creds, reset). Both are
held in context variables set by log_context(), so concurrent key lookups
inside one batch all log under their batch's operation.

Console output goes through rich; an optional JSON-lines file gets every
record with its structured fields.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import orjson
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from authstore.config import get_settings

_ROOT_LOGGER = "authstore"

_session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)
_operation_var: ContextVar[str | None] = ContextVar("operation", default=None)

_setup_done: bool = False


def get_session_id() -> str | None:
    """Get the session ID of the current context."""
    return _session_id_var.get()


def get_operation() -> str | None:
    """Get the store operation of the current context."""
    return _operation_var.get()


def _context_fields() -> dict[str, str]:
    fields: dict[str, str] = {}
    session_id = _session_id_var.get()
    operation = _operation_var.get()
    if session_id:
        fields["session_id"] = session_id
    if operation:
        fields["operation"] = operation
    return fields


@contextmanager
def log_context(
    session_id: str | None = None,
    operation: str | None = None,
) -> Generator[None, None, None]:
    """Scope the session and operation attached to log records.

    Fields passed as None keep their outer value.
    """
    tokens = []
    if session_id is not None:
        tokens.append((_session_id_var, _session_id_var.set(session_id)))
    if operation is not None:
        tokens.append((_operation_var, _operation_var.set(operation)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_fields(),
        }
        fields = getattr(record, "fields", None)
        if fields:
            log_obj["extra"] = fields
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(log_obj, default=str).decode("utf-8")


class ContextRichHandler(RichHandler):
    """Rich handler prefixing the level with a short session ID and operation."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        level_text = super().get_level_text(record)
        context = _context_fields()
        if not context:
            return level_text

        parts: list[str] = []
        if "session_id" in context:
            # "sess_<uuid7>": the tail of the UUID is the random part
            parts.append(f"[dim]{context['session_id'][-8:]}[/dim]")
        if "operation" in context:
            parts.append(f"[cyan]{context['operation']}[/cyan]")
        return Text.from_markup(f"{level_text} {' '.join(parts)}")


class ContextLogger:
    """Logger wrapper whose keyword arguments become structured fields.

    ``logger.error("Key write failed", key=key, error=str(e))`` records
    ``key`` and ``error`` under ``extra`` in the JSON log, together with the
    current session and operation.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, exc_info: bool, fields: dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, msg, exc_info=exc_info, extra={"fields": fields})

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, False, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, False, fields)

    def error(self, msg: str, *, exc_info: bool = False, **fields: Any) -> None:
        self._log(logging.ERROR, msg, exc_info, fields)


def _configured_level() -> str:
    try:
        return get_settings().LOG_LEVEL
    except ValidationError:
        # Invalid settings are reported by open_auth_state(); logging still works.
        return "INFO"


def setup_logging(
    log_level: str | None = None,
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Configure the ``authstore`` logger.

    Args:
        log_level: Level name. Defaults to Settings.LOG_LEVEL.
        log_file: Optional JSON-lines file receiving every record.
        console_output: Whether to log to stderr through rich.
    """
    global _setup_done

    level = getattr(logging, (log_level or _configured_level()).upper())

    root_logger = logging.getLogger(_ROOT_LOGGER)
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.propagate = False

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    if console_output:
        rich_handler = ContextRichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            markup=True,
        )
        rich_handler.setLevel(level)
        root_logger.addHandler(rich_handler)

    # aiosqlite logs every statement at DEBUG
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    _setup_done = True


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger under the ``authstore`` namespace."""
    if not _setup_done:
        setup_logging()

    if not name.startswith(_ROOT_LOGGER):
        name = f"{_ROOT_LOGGER}.{name}"

    return ContextLogger(logging.getLogger(name))
