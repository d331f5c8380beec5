"""Tests for the rudis logging module.

- _JsonFormatter: structured JSON output with context and exception fields
- _PlainFormatter: one-line text output for the dump log
- get_logger(): idempotent handler registration, no propagation to root
- log_context(): context dicts with truncation and extras
"""

from __future__ import annotations

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from rudis.logging import (
    BACKUP_COUNT,
    CLI_LOG,
    MAX_BYTES,
    TUI_LOG,
    _JsonFormatter,
    _PlainFormatter,
    _make_handler,
    get_logger,
    log_context,
)


def _make_record(msg="test message", level=logging.INFO, name="rudis.test", **kwargs):
    record = logging.LogRecord(
        name=name, level=level, pathname="test.py", lineno=42,
        msg=msg, args=(), exc_info=None,
    )
    for k, v in kwargs.items():
        setattr(record, k, v)
    return record


class TestLogFilePaths:
    def test_paths_live_in_tmp(self):
        assert TUI_LOG == "/tmp/rudis-tui.log"
        assert CLI_LOG == "/tmp/rudis-cli.log"

    def test_rotation_settings(self):
        assert MAX_BYTES == 5 * 1024 * 1024
        assert BACKUP_COUNT == 3


class TestJsonFormatter:
    def setup_method(self):
        self.fmt = _JsonFormatter()

    def test_basic_json_output(self):
        parsed = json.loads(self.fmt.format(_make_record("hello world")))
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "rudis.test"
        assert parsed["message"] == "hello world"
        assert "T" in parsed["timestamp"]

    def test_context_included(self):
        record = _make_record(context={"endpoint": "local", "pattern": "user:*"})
        parsed = json.loads(self.fmt.format(record))
        assert parsed["context"] == {"endpoint": "local", "pattern": "user:*"}

    def test_empty_context_not_included(self):
        parsed = json.loads(self.fmt.format(_make_record(context={})))
        assert "context" not in parsed

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()
        parsed = json.loads(self.fmt.format(record))
        assert "ValueError: boom" in parsed["exception"]

    def test_non_serializable_context_uses_str(self):
        record = _make_record(context={"obj": object()})
        parsed = json.loads(self.fmt.format(record))
        assert parsed["context"]["obj"].startswith("<object object")


class TestPlainFormatter:
    def test_format(self):
        output = _PlainFormatter().format(_make_record("dumped 3 keys", level=logging.WARNING))
        assert output.startswith("[")
        assert output.endswith("WARNING: dumped 3 keys")


class TestHandlers:
    def test_make_handler_creates_directory(self, tmp_path):
        path = str(tmp_path / "nested" / "rudis.log")
        handler = _make_handler(path, _PlainFormatter(), max_bytes=1024, backup_count=1)
        try:
            assert isinstance(handler, RotatingFileHandler)
            assert os.path.isdir(tmp_path / "nested")
            assert handler.maxBytes == 1024
            assert handler.backupCount == 1
        finally:
            handler.close()

    def test_get_logger_is_idempotent(self, tmp_path):
        path = str(tmp_path / "idem.log")
        first = get_logger("rudis.test.idem", path)
        second = get_logger("rudis.test.idem", path)
        assert first is second
        assert len(first.handlers) == 1
        assert first.propagate is False

    def test_loggers_on_one_file_share_a_handler(self, tmp_path):
        path = str(tmp_path / "shared.log")
        scanner = get_logger("rudis.test.shared.scanner", path)
        store = get_logger("rudis.test.shared.store", path)
        assert scanner.handlers == store.handlers
        assert len(scanner.handlers) == 1

    def test_same_file_different_format_gets_own_handler(self, tmp_path):
        path = str(tmp_path / "mixed.log")
        structured = get_logger("rudis.test.mixed.json", path)
        plain = get_logger("rudis.test.mixed.plain", path, json_format=False)
        assert structured.handlers[0] is not plain.handlers[0]

    def test_writes_json_lines(self, tmp_path):
        path = str(tmp_path / "lines.log")
        logger = get_logger("rudis.test.lines", path)
        logger.info("scan page", extra={"context": log_context(endpoint="local", cursor=17)})
        for handler in logger.handlers:
            handler.flush()
        with open(path) as f:
            entry = json.loads(f.readline())
        assert entry["message"] == "scan page"
        assert entry["context"] == {"endpoint": "local", "cursor": 17}

    def test_plain_format_option(self, tmp_path):
        path = str(tmp_path / "plain.log")
        logger = get_logger("rudis.test.plain", path, json_format=False)
        logger.warning("dump failed")
        for handler in logger.handlers:
            handler.flush()
        with open(path) as f:
            assert "WARNING: dump failed" in f.read()


class TestLogContext:
    def test_empty(self):
        assert log_context() == {}

    def test_fields(self):
        ctx = log_context(endpoint="cache", pattern="user:*", key="user:1", duration_ms=12.345)
        assert ctx == {"endpoint": "cache", "pattern": "user:*", "key": "user:1",
                       "duration_ms": 12.3}

    def test_key_truncated(self):
        assert len(log_context(key="k" * 200)["key"]) == 80

    def test_extras_pass_through(self):
        assert log_context(cursor=0, phase="complete") == {"cursor": 0, "phase": "complete"}
