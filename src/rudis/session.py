"""Per-endpoint browsing state for multi-server rudis.

Each configured endpoint is one tab.  A connected endpoint owns exactly one
Session: the scanner cache, the selected row, and the single-key view.
EndpointRegistry handles tab navigation between endpoints.

Selection order is the lexical order of the cached key names, so the
highlighted row does not jump around as new pages are merged in.
"""

from __future__ import annotations

from typing import Callable, Optional

from .logging import get_logger, log_context
from .metadata import KeyMetadata
from .scanner import DEFAULT_PATTERN, KeyScanner
from .store import EndpointConfig, StoreConnection, StoreError, open_connection

_log = get_logger("rudis.session")

Connector = Callable[[EndpointConfig], StoreConnection]


class Session:
    """State for one live connection (one connected tab)."""

    def __init__(self, connection: StoreConnection, name: str = "",
                 scan_count: Optional[int] = None) -> None:
        self.connection = connection
        self.name = name
        self.scanner = KeyScanner(connection, count=scan_count, name=name)

        # ── Key list ──────────────────────────────────────────────
        self.selected: Optional[int] = None      # index into keys()

        # ── Single-key view ───────────────────────────────────────
        self.viewing_key: Optional[str] = None
        self.scroll: int = 0
        self.view_value: Optional[str] = None    # refreshed every cycle, never cached

    # ─── Scanning ─────────────────────────────────────────────────

    @property
    def pattern(self) -> str:
        return self.scanner.pattern

    def scan(self, pattern: str) -> None:
        if pattern != self.scanner.pattern:
            self.selected = None
        self.scanner.scan(pattern)

    def advance(self) -> None:
        self.scanner.advance()

    def is_complete(self) -> bool:
        return self.scanner.is_complete()

    def pull_to_target(self, target: int) -> int:
        """Fetch pages until *target* keys are cached or the scan is done.

        Returns the number of pages fetched.  Errors propagate with the cache
        and cursor as they were after the last good page.
        """
        pages = 0
        while not self.scanner.is_complete() and self.scanner.count() < target:
            if self.scanner.loading:
                break
            self.scanner.advance()
            pages += 1
        return pages

    def count(self) -> int:
        return self.scanner.count()

    def keys(self) -> list[str]:
        return self.scanner.sorted_keys()

    def metadata(self, key: str) -> Optional[KeyMetadata]:
        return self.scanner.keys.get(key)

    # ─── Selection (wraps around) ─────────────────────────────────

    def select_next(self) -> None:
        count = self.count()
        if count == 0:
            self.selected = None
        elif self.selected is None or self.selected >= count - 1:
            self.selected = 0
        else:
            self.selected += 1

    def select_prev(self) -> None:
        count = self.count()
        if count == 0:
            self.selected = None
        elif self.selected is None:
            self.selected = 0
        elif self.selected == 0 or self.selected > count - 1:
            self.selected = count - 1
        else:
            self.selected -= 1

    def selected_key(self) -> Optional[str]:
        if self.selected is None:
            return None
        keys = self.keys()
        if not 0 <= self.selected < len(keys):
            return None
        return keys[self.selected]

    # ─── Single-key view ──────────────────────────────────────────

    @property
    def is_viewing(self) -> bool:
        return self.viewing_key is not None

    def enter_key_view(self) -> bool:
        """Open the selected key. Returns False when nothing is selected."""
        key = self.selected_key()
        if key is None:
            return False
        self.viewing_key = key
        self.scroll = 0
        self.view_value = None
        self.refresh_metadata(key)
        return True

    def exit_key_view(self) -> None:
        self.viewing_key = None
        self.scroll = 0
        self.view_value = None

    def scroll_down(self) -> None:
        self.scroll += 1

    def scroll_up(self) -> None:
        self.scroll = max(0, self.scroll - 1)

    def fetch_view_value(self) -> Optional[str]:
        """Read the viewed key's value from the store.

        A failed read leaves the view empty; it does not leave view mode.
        """
        if self.viewing_key is None:
            self.view_value = None
            return None
        try:
            self.view_value = self.connection.fetch_value(self.viewing_key)
        except StoreError as exc:
            _log.warning(
                "Value fetch failed: %s", exc,
                extra={"context": log_context(endpoint=self.name, key=self.viewing_key)},
            )
            self.view_value = None
        return self.view_value

    def refresh_metadata(self, key: str) -> None:
        """Fill in type, TTL and size for *key*. Each lookup may fail on its own."""
        meta = self.scanner.keys.setdefault(key, KeyMetadata())
        lookups = (
            ("value_type", self.connection.value_type),
            ("ttl", self.connection.ttl),
            ("size", self.connection.memory_usage),
        )
        for attr, lookup in lookups:
            try:
                setattr(meta, attr, lookup(key))
            except StoreError as exc:
                _log.warning(
                    "Metadata lookup %s failed: %s", attr, exc,
                    extra={"context": log_context(endpoint=self.name, key=key)},
                )

    def close(self) -> None:
        self.connection.close()


class Endpoint:
    """One configured server. Has a Session exactly while connected."""

    def __init__(self, config: EndpointConfig, connector: Optional[Connector] = None,
                 scan_count: Optional[int] = None) -> None:
        self.config = config
        self._connector: Connector = connector or open_connection
        self._scan_count = scan_count
        self.session: Optional[Session] = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def port(self) -> int:
        return self.config.port

    @property
    def is_connected(self) -> bool:
        return self.session is not None

    def connect(self) -> None:
        """Open a connection and cache the first page of ``*``.

        No-op when already connected.  On failure no Session is created and
        the error propagates.
        """
        if self.session is not None:
            return
        connection = self._connector(self.config)
        session = Session(connection, name=self.name, scan_count=self._scan_count)
        try:
            session.scan(DEFAULT_PATTERN)
        except StoreError:
            connection.close()
            raise
        self.session = session
        _log.info(
            "Endpoint connected with %d keys cached", session.count(),
            extra={"context": log_context(endpoint=self.name)},
        )

    def disconnect(self) -> None:
        if self.session is not None:
            self.session.close()
            _log.info("Endpoint disconnected", extra={"context": log_context(endpoint=self.name)})
        self.session = None


class EndpointRegistry:
    """Ordered endpoints with tab navigation.

    Tab switching clamps at both ends (unlike key selection, which wraps).
    """

    def __init__(self, endpoints: list[Endpoint], initial_tab: int = 0) -> None:
        if not endpoints:
            raise ValueError("at least one endpoint is required")
        self.endpoints: list[Endpoint] = list(endpoints)
        self._current_tab = 0
        self.set_tab(initial_tab)

    @property
    def current_tab(self) -> int:
        return self._current_tab

    def set_tab(self, tab: int) -> None:
        self._current_tab = max(0, min(tab, len(self.endpoints) - 1))

    def next_tab(self) -> None:
        self.set_tab(self._current_tab + 1)

    def prev_tab(self) -> None:
        self.set_tab(self._current_tab - 1)

    def append(self, endpoint: Endpoint) -> None:
        self.endpoints.append(endpoint)

    def current(self) -> Endpoint:
        return self.endpoints[self._current_tab]

    def count(self) -> int:
        return len(self.endpoints)

    def disconnect_all(self) -> None:
        for endpoint in self.endpoints:
            endpoint.disconnect()
