"""Shared fixtures: an in-memory store that speaks the StoreConnection API."""

from __future__ import annotations

import fnmatch
import json
from typing import Any, Optional

import pytest

from rudis.session import Endpoint, EndpointRegistry
from rudis.store import EndpointConfig, TransportError


class FakeStore:
    """In-memory stand-in for ``rudis.store.StoreConnection``.

    SCAN walks the sorted key list ``page_size`` entries at a time and
    filters each page by the glob, like the real server does, so a page can
    come back empty while the cursor is still non-zero.
    """

    def __init__(self, data: Optional[dict[str, Any]] = None,
                 ttls: Optional[dict[str, int]] = None, page_size: int = 2) -> None:
        self.data: dict[str, Any] = dict(data or {})
        self.ttls: dict[str, int] = dict(ttls or {})
        self.page_size = page_size
        self.calls: list[tuple] = []
        self.fail_scan = False
        self.fail_get = False
        self.fail_ttl: set[str] = set()
        self.closed = False

    def _count(self, op: str) -> int:
        return sum(1 for c in self.calls if c[0] == op)

    @property
    def scan_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "SCAN"]

    def scan_page(self, cursor: int, pattern: str, count: Optional[int] = None):
        self.calls.append(("SCAN", cursor, pattern))
        if self.fail_scan:
            raise TransportError("SCAN", "Connection reset by peer")
        keys = sorted(self.data)
        batch = keys[cursor:cursor + self.page_size]
        next_cursor = cursor + self.page_size
        if next_cursor >= len(keys):
            next_cursor = 0
        return next_cursor, [k for k in batch if fnmatch.fnmatchcase(k, pattern)]

    def ttl(self, key: str) -> Optional[int]:
        self.calls.append(("TTL", key))
        if key in self.fail_ttl:
            raise TransportError("TTL", "Timeout reading from socket")
        return self.ttls.get(key)

    def value_type(self, key: str) -> Optional[str]:
        self.calls.append(("TYPE", key))
        value = self.data.get(key)
        if value is None:
            return None
        if isinstance(value, dict):
            return "hash"
        if isinstance(value, list):
            return "list"
        if isinstance(value, set):
            return "set"
        return "string"

    def memory_usage(self, key: str) -> Optional[int]:
        self.calls.append(("MEMORY", key))
        value = self.data.get(key)
        return None if value is None else len(str(value))

    def fetch_value(self, key: str) -> Optional[str]:
        self.calls.append(("GET", key))
        if self.fail_get:
            raise TransportError("GET", "Connection refused")
        value = self.data.get(key)
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, set):
            value = sorted(value)
        return json.dumps(value)

    def close(self) -> None:
        self.closed = True


class ScriptedStore(FakeStore):
    """FakeStore whose SCAN replies come from a fixed ``{cursor: (next, keys)}`` script."""

    def __init__(self, pages: dict[int, tuple[int, list[str]]], **kwargs) -> None:
        super().__init__(**kwargs)
        self.pages = pages

    def scan_page(self, cursor: int, pattern: str, count: Optional[int] = None):
        self.calls.append(("SCAN", cursor, pattern))
        if self.fail_scan:
            raise TransportError("SCAN", "Connection reset by peer")
        next_cursor, keys = self.pages[cursor]
        return next_cursor, [k for k in keys if fnmatch.fnmatchcase(k, pattern)]


@pytest.fixture()
def make_store():
    """Factory for FakeStore instances."""
    return FakeStore


@pytest.fixture()
def make_scripted_store():
    return ScriptedStore


def _registry(stores: list[FakeStore], names: Optional[list[str]] = None,
              initial_tab: int = 0) -> EndpointRegistry:
    endpoints = []
    for idx, store in enumerate(stores):
        name = names[idx] if names else f"server-{idx}"
        config = EndpointConfig(name=name, host=f"host-{idx}", port=6379)
        endpoints.append(Endpoint(config, connector=lambda _cfg, s=store: s))
    return EndpointRegistry(endpoints, initial_tab=initial_tab)


@pytest.fixture()
def make_registry():
    """Factory: ``make_registry([store, ...], names=None, initial_tab=0)``."""
    return _registry
