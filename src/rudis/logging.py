"""Log files for rudis.

While the browser is open Textual draws the whole screen, so rudis never
prints diagnostics.  Every module asks ``get_logger`` for a named logger
and the records land in one of two rotating files:

``TUI_LOG``
    JSON lines from the browser and the store layer.  Extra fields such
    as the endpoint name, the SCAN pattern or the key being read travel
    in ``extra={"context": log_context(...)}``.
``CLI_LOG``
    Plain text lines from ``rudis --dump``.

All loggers writing to the same file share one handler, so rotation
happens once per file rather than once per module.
"""

from __future__ import annotations

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any

TUI_LOG = "/tmp/rudis-tui.log"
CLI_LOG = "/tmp/rudis-cli.log"

MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3

# Longest key name kept in a log context.
KEY_PREVIEW = 80


class _JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message,
    plus ``context`` and ``exception`` when present."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S")
        entry: dict[str, Any] = {
            "timestamp": f"{stamp}.{int(record.msecs):03d}",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        # Key names and values can be anything; fall back to str().
        return json.dumps(entry, default=str)


class _PlainFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        stamp = self.formatTime(record, datefmt="%Y-%m-%d %H:%M:%S")
        return f"[{stamp}] {record.levelname}: {record.getMessage()}"


def _make_handler(path: str, formatter: logging.Formatter,
                  max_bytes: int = MAX_BYTES,
                  backup_count: int = BACKUP_COUNT) -> RotatingFileHandler:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_bytes,
                                  backupCount=backup_count, encoding="utf-8")
    handler.setFormatter(formatter)
    return handler


_handlers: dict[tuple[str, bool], RotatingFileHandler] = {}


def _shared_handler(path: str, json_format: bool) -> RotatingFileHandler:
    handler = _handlers.get((path, json_format))
    if handler is None:
        formatter = _JsonFormatter() if json_format else _PlainFormatter()
        handler = _make_handler(path, formatter)
        _handlers[(path, json_format)] = handler
    return handler


def get_logger(name: str, log_file: str = TUI_LOG, level: int = logging.DEBUG,
               *, json_format: bool = True) -> logging.Logger:
    """Return the logger *name*, attached to *log_file*.

    Safe to call repeatedly: the file handler is attached once.  Records
    do not propagate to the root logger, which would write to the
    terminal underneath the TUI.
    """
    logger = logging.getLogger(name)
    handler = _shared_handler(log_file, json_format)
    if handler not in logger.handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def log_context(*, endpoint: str = "", pattern: str = "", key: str = "",
                duration_ms: float | None = None, **extra: Any) -> dict[str, Any]:
    """Collect the non-empty context fields for one log record.

    ``key`` is cut to ``KEY_PREVIEW`` characters and ``duration_ms`` is
    rounded to a tenth of a millisecond; anything else passes through.
    """
    context: dict[str, Any] = {}
    if endpoint:
        context["endpoint"] = endpoint
    if pattern:
        context["pattern"] = pattern
    if key:
        context["key"] = key[:KEY_PREVIEW]
    if duration_ms is not None:
        context["duration_ms"] = round(duration_ms, 1)
    context.update(extra)
    return context
