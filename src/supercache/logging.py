"""
Structured logging for supercache.

Cache operations run inside log_context(scope=..., operation=...). Every
record emitted meanwhile carries those fields: as a prefix on the rich
console and as top-level keys in the JSON-lines log file.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import orjson
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

_scope_var: ContextVar[str | None] = ContextVar("scope", default=None)
_operation_var: ContextVar[str | None] = ContextVar("operation", default=None)

_configured = False


def get_scope() -> str | None:
    return _scope_var.get()


def get_operation() -> str | None:
    return _operation_var.get()


def _current_context() -> dict[str, str]:
    context: dict[str, str] = {}
    scope = _scope_var.get()
    operation = _operation_var.get()
    if scope:
        context["scope"] = scope
    if operation:
        context["operation"] = operation
    return context


@contextmanager
def log_context(
    scope: str | None = None,
    operation: str | None = None,
) -> Generator[None, None, None]:
    """Tag log records with a cache scope and operation.

    Arguments left as None keep the enclosing context's value.
    """
    scope_token = _scope_var.set(scope) if scope is not None else None
    operation_token = _operation_var.set(operation) if operation is not None else None
    try:
        yield
    finally:
        if operation_token is not None:
            _operation_var.reset(operation_token)
        if scope_token is not None:
            _scope_var.reset(scope_token)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with scope/operation and structured fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_current_context(),
        }
        fields = getattr(record, "extra", None)
        if fields:
            entry["extra"] = fields
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(entry, default=str).decode("utf-8")


class ContextRichHandler(RichHandler):
    """Rich console handler that prefixes the level with scope and operation."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        level_text = super().get_level_text(record)
        context = _current_context()
        if not context:
            return level_text

        prefix = Text()
        if "scope" in context:
            prefix.append(f" {context['scope']}", style="dim")
        if "operation" in context:
            prefix.append(f" {context['operation']}", style="cyan")
        return Text.assemble(level_text, prefix)


class ContextLogger:
    """Logger whose keyword arguments become structured fields.

    ``logger.info("Purging", keys=[...])`` stores ``{"keys": [...]}`` on the
    record, where JSONFormatter picks it up.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, **fields: Any) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, msg, extra={"extra": fields})

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, **fields)


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Install handlers on the ``supercache`` logger.

    Args:
        log_level: Level name for the logger and the console handler.
        log_file: JSON-lines file receiving every record from DEBUG up.
        console_output: Whether to log to stderr through rich.
    """
    global _configured

    level = getattr(logging, log_level.upper())
    package_logger = logging.getLogger("supercache")
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers.clear()
    package_logger.propagate = False

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        package_logger.addHandler(file_handler)

    if console_output:
        console_handler = ContextRichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(level)
        package_logger.addHandler(console_handler)

    _configured = True


def get_logger(name: str) -> ContextLogger:
    """Return a ContextLogger under the ``supercache`` namespace."""
    if not _configured:
        setup_logging()

    if not name.startswith("supercache"):
        name = f"supercache.{name}"

    return ContextLogger(logging.getLogger(name))
