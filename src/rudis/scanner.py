"""Cursor-based key-space scanner.

Pages through the keys matching a glob pattern with SCAN and accumulates
them into a local cache.  The store's cursor overloads ``0`` as both
"start" and "finished", so the scanner tracks an explicit tri-state
(``NOT_STARTED`` / ``IN_PROGRESS`` / ``COMPLETE``) and only hands the raw
cursor to the store.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Optional

from .logging import get_logger, log_context
from .metadata import KeyMetadata
from .store import SCAN_SENTINEL, StoreConnection, StoreError

_log = get_logger("rudis.scanner")

DEFAULT_PATTERN = "*"


class ScanPhase(enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ScanState:
    """Where an enumeration stands. ``cursor`` is only meaningful in progress."""

    phase: ScanPhase = ScanPhase.NOT_STARTED
    cursor: int = SCAN_SENTINEL

    @property
    def request_cursor(self) -> int:
        """Cursor to send with the next SCAN call."""
        if self.phase is ScanPhase.IN_PROGRESS:
            return self.cursor
        return SCAN_SENTINEL

    def after_page(self, next_cursor: int) -> "ScanState":
        if next_cursor == SCAN_SENTINEL:
            return ScanState(ScanPhase.COMPLETE)
        return ScanState(ScanPhase.IN_PROGRESS, next_cursor)


class KeyScanner:
    """Accumulates the keys matching ``pattern`` one SCAN page at a time.

    The cache only grows until the pattern changes; a new pattern throws
    the whole cache away and starts over.  A failed page leaves both the
    cache and the cursor untouched so the next call simply retries.
    """

    def __init__(self, connection: StoreConnection, pattern: str = DEFAULT_PATTERN,
                 count: Optional[int] = None, name: str = "") -> None:
        self.connection = connection
        self.pattern = pattern
        self.count_hint = count
        self.name = name
        self.state = ScanState()
        self.keys: dict[str, KeyMetadata] = {}
        self.loading = False     # a page fetch is in flight

    def scan(self, pattern: str) -> None:
        """Switch to *pattern* (resetting if it changed) and fetch one page."""
        if pattern != self.pattern:
            _log.info(
                "Pattern changed, dropping %d cached keys", len(self.keys),
                extra={"context": log_context(endpoint=self.name, pattern=pattern,
                                              previous=self.pattern)},
            )
            self.pattern = pattern
            self.keys.clear()
            self.state = ScanState()
        self._fetch_page()

    def advance(self) -> None:
        """Fetch the next page, unless the enumeration already finished."""
        if self.is_complete():
            return
        self._fetch_page()

    def is_complete(self) -> bool:
        return self.state.phase is ScanPhase.COMPLETE

    def count(self) -> int:
        return len(self.keys)

    def sorted_keys(self) -> list[str]:
        return sorted(self.keys)

    def _fetch_page(self) -> None:
        if self.loading:
            return
        self.loading = True
        try:
            start = time.time()
            next_cursor, batch = self.connection.scan_page(
                self.state.request_cursor, self.pattern, self.count_hint,
            )
            fresh: dict[str, KeyMetadata] = {}
            for key in batch:
                if key in self.keys or key in fresh:
                    continue
                fresh[key] = KeyMetadata(ttl=self._lookup_ttl(key))
            # Commit only once the whole page is in hand.
            self.keys.update(fresh)
            self.state = self.state.after_page(next_cursor)
            _log.debug(
                "Fetched page: %d keys (%d new), %d cached",
                len(batch), len(fresh), len(self.keys),
                extra={"context": log_context(
                    endpoint=self.name, pattern=self.pattern,
                    cursor=next_cursor, phase=self.state.phase.value,
                    duration_ms=(time.time() - start) * 1000,
                )},
            )
        finally:
            self.loading = False

    def _lookup_ttl(self, key: str) -> Optional[int]:
        try:
            return self.connection.ttl(key)
        except StoreError as exc:
            _log.warning(
                "TTL lookup failed: %s", exc,
                extra={"context": log_context(endpoint=self.name, key=key)},
            )
            return None
