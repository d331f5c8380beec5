"""Store protocol adapter.

Thin wrapper over a redis-py client exposing only the calls the browser
needs: cursor-based SCAN pages, TTL, TYPE, MEMORY USAGE and a type-aware
value fetch.  All redis-py exceptions are translated to ``TransportError``
here, so nothing else in the package imports redis.

Anything with the same methods as ``StoreConnection`` can stand in for it
(the test suite uses an in-memory fake).
"""

from __future__ import annotations

import contextlib
import json
import time
from dataclasses import dataclass
from typing import Iterator, Optional

import redis

from .logging import get_logger, log_context

_log = get_logger("rudis.store")

# Cursor value the store uses both to start an enumeration and to say it
# has finished.  ``rudis.scanner`` keeps the two meanings apart.
SCAN_SENTINEL = 0


class StoreError(Exception):
    """Base class for failures talking to the store."""


class TransportError(StoreError):
    """Connect or command failure (refused, timeout, protocol error)."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


@dataclass(frozen=True)
class EndpointConfig:
    """Where and how to reach one store."""

    name: str
    host: str
    port: int = 6379
    username: Optional[str] = None
    password: Optional[str] = None
    db: int = 0

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


def _text(value):
    """Decode a raw reply. Bytes that are not UTF-8 show up as ``\\xNN`` escapes."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="backslashreplace")
    return value


@contextlib.contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except redis.exceptions.RedisError as exc:
        raise TransportError(operation, str(exc) or type(exc).__name__) from exc


class StoreConnection:
    """One live connection to a store.

    The client runs with ``decode_responses=False``; key names and values are
    decoded here.  Lookups by display name go back through ``_raw_keys`` so a
    key whose name is not valid UTF-8 can still be read.
    """

    def __init__(self, client: "redis.Redis", name: str = "") -> None:
        self._client = client
        self.name = name
        self._raw_keys: dict[str, bytes] = {}

    def _raw(self, key: str):
        return self._raw_keys.get(key, key)

    # ─── Enumeration ──────────────────────────────────────────────

    def scan_page(self, cursor: int, pattern: str,
                  count: Optional[int] = None) -> tuple[int, list[str]]:
        """Fetch one SCAN page. Returns ``(next_cursor, keys)``."""
        with _translate_errors("SCAN"):
            next_cursor, raw_keys = self._client.scan(cursor=cursor, match=pattern, count=count)
        keys = []
        for raw in raw_keys:
            key = _text(raw)
            if isinstance(raw, bytes):
                self._raw_keys[key] = raw
            keys.append(key)
        return int(next_cursor), keys

    # ─── Per-key lookups ──────────────────────────────────────────

    def ttl(self, key: str) -> Optional[int]:
        """Seconds left before *key* expires, ``None`` if it never does or is gone."""
        with _translate_errors("TTL"):
            seconds = self._client.ttl(self._raw(key))
        if seconds is None or seconds < 0:
            return None
        return int(seconds)

    def value_type(self, key: str) -> Optional[str]:
        with _translate_errors("TYPE"):
            kind = _text(self._client.type(self._raw(key)))
        if not kind or kind == "none":
            return None
        return kind

    def memory_usage(self, key: str) -> Optional[int]:
        with _translate_errors("MEMORY USAGE"):
            size = self._client.memory_usage(self._raw(key))
        return int(size) if size is not None else None

    def fetch_value(self, key: str) -> Optional[str]:
        """Read *key* as text. Non-string types are serialized to JSON.

        Returns ``None`` when the key does not exist.
        """
        kind = self.value_type(key)
        if kind is None:
            return None
        raw = self._raw(key)
        with _translate_errors("GET"):
            if kind == "string":
                return _text(self._client.get(raw))
            if kind == "hash":
                value = {_text(f): _text(v) for f, v in self._client.hgetall(raw).items()}
            elif kind == "list":
                value = [_text(v) for v in self._client.lrange(raw, 0, -1)]
            elif kind == "set":
                value = sorted(_text(v) for v in self._client.smembers(raw))
            elif kind == "zset":
                value = [[_text(member), score] for member, score in
                         self._client.zrange(raw, 0, -1, withscores=True)]
            else:
                return f"<{kind} value cannot be displayed>"
        return json.dumps(value, ensure_ascii=False)

    def close(self) -> None:
        try:
            self._client.close()
        except redis.exceptions.RedisError:
            _log.debug("Ignoring error while closing connection",
                       extra={"context": log_context(endpoint=self.name)})


def open_connection(endpoint: EndpointConfig,
                    socket_timeout: float = 5.0) -> StoreConnection:
    """Connect to *endpoint* and verify it answers PING.

    Raises ``TransportError`` if the store cannot be reached; the client is
    closed before the error propagates.
    """
    start = time.time()
    client = redis.Redis(
        host=endpoint.host,
        port=endpoint.port,
        db=endpoint.db,
        username=endpoint.username,
        password=endpoint.password,
        decode_responses=False,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )
    connection = StoreConnection(client, name=endpoint.name)
    try:
        with _translate_errors("CONNECT"):
            client.ping()
    except TransportError:
        connection.close()
        raise
    _log.info(
        "Connected to %s", endpoint.address,
        extra={"context": log_context(
            endpoint=endpoint.name,
            duration_ms=(time.time() - start) * 1000,
        )},
    )
    return connection
