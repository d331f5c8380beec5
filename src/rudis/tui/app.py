"""Main TUI application for rudis.

The Textual app is only the terminal side of the event loop: it forwards
key presses into a KeyBuffer, runs the EventLoop consumer in a worker
thread, and paints whatever snapshot the consumer hands back.
"""

from __future__ import annotations

from typing import Optional

from textual import events, work
from textual.app import App, ComposeResult
from textual.widgets import Static

from ..events import DEFAULT_TICK_RATE, EventLoop, EventPump, KeyBuffer
from ..logging import get_logger, log_context
from ..modes import KeyInput, Mode
from ..state import AppState
from ..view import ViewSnapshot
from .themes import COLOR_SCHEMES, DEFAULT_SCHEME, build_css, get_scheme
from .views import (
    body_titles,
    render_disconnected,
    render_key_table,
    render_key_view,
    render_status,
    render_tab_bar,
)
from .widgets import _safe_action

_log = get_logger("rudis.tui")

# tab bar + status line + body border (2) + table header
CHROME_ROWS = 5


class RudisApp(App):
    """Textual app for browsing keys across several servers."""

    CSS = build_css(DEFAULT_SCHEME)

    def __init__(
        self,
        state: AppState,
        tick_rate: float = DEFAULT_TICK_RATE,
        color_scheme: str = DEFAULT_SCHEME,
        **kwargs,
    ) -> None:
        if color_scheme not in COLOR_SCHEMES:
            color_scheme = DEFAULT_SCHEME
        self.__class__.CSS = build_css(color_scheme)
        self._color_scheme = color_scheme
        self._cs = get_scheme(color_scheme)  # shortcut for inline Rich markup

        super().__init__(**kwargs)
        self.state = state
        self.key_buffer = KeyBuffer()
        self.pump = EventPump(self.key_buffer, tick_rate=tick_rate)
        self._visible_rows = 20
        self.consumer = EventLoop(
            state,
            self.pump.channel,
            render=self._render_from_worker,
            visible_rows=lambda: self._visible_rows,
            # Ticks normally wake the consumer; this only bounds a stall.
            wait_timeout=max(1.0, tick_rate * 5),
        )
        self.last_snapshot: Optional[ViewSnapshot] = None

    # ─── Widget composition ────────────────────────────────────────

    def compose(self) -> ComposeResult:
        yield Static("", id="tab-bar")
        yield Static("", id="body")
        yield Static("", id="filter-box")
        yield Static("", id="status-line")

    def on_mount(self) -> None:
        self.title = "rudis"
        self.query_one("#filter-box").border_title = "Filter"
        self._update_visible_rows()
        self.pump.start()
        self._consume()

    def on_resize(self, event: events.Resize) -> None:
        self._update_visible_rows()

    def on_unmount(self) -> None:
        self.state.stop()
        self.pump.stop()

    def _update_visible_rows(self) -> None:
        self._visible_rows = max(1, self.size.height - CHROME_ROWS)

    # ─── Input ─────────────────────────────────────────────────────

    @_safe_action
    def on_key(self, event: events.Key) -> None:
        """Every key goes through the event channel; none are handled here."""
        self.key_buffer.push(KeyInput(key=event.key, character=event.character))
        event.prevent_default()
        event.stop()

    # ─── Consumer ──────────────────────────────────────────────────

    @work(thread=True, exit_on_error=False, name="event_loop", exclusive=True)
    def _consume(self) -> None:
        """Run the EventLoop until the state stops, then close the app."""
        try:
            self.consumer.run()
        except Exception:
            _log.error("Event loop crashed", exc_info=True)
        self._safe_call(self.exit)

    def _safe_call(self, callback, *args) -> bool:
        """Call callback on the Textual event loop, swallowing 'App is not running'."""
        try:
            self.call_from_thread(callback, *args)
            return True
        except RuntimeError:
            return False

    def _render_from_worker(self, snap: ViewSnapshot) -> None:
        self._safe_call(self.paint, snap)

    # ─── Painting ──────────────────────────────────────────────────

    @_safe_action
    def paint(self, snap: ViewSnapshot) -> None:
        """Draw one frame from a snapshot. Does no I/O."""
        self.last_snapshot = snap
        s = self._cs

        self.query_one("#tab-bar", Static).update(render_tab_bar(snap, s))

        body = self.query_one("#body", Static)
        body.border_title, body.border_subtitle = body_titles(snap)
        body.set_class(not snap.connected, "disconnected")
        if not snap.connected:
            body.update(render_disconnected(snap, s))
        elif snap.viewing:
            body.update(render_key_view(snap, s))
        else:
            body.update(render_key_table(snap, s))

        filter_box = self.query_one("#filter-box", Static)
        filter_box.display = snap.mode is Mode.FILTER_ENTRY
        if snap.mode is Mode.FILTER_ENTRY:
            filter_box.update(snap.filter_buffer + "▏")

        status = self.query_one("#status-line", Static)
        status.set_class(bool(snap.status), "error")
        status.update(render_status(snap))

    def show_error(self, message: str) -> None:
        _log.warning("UI error: %s", message, extra={"context": log_context(scheme=self._color_scheme)})
        status = self.query_one("#status-line", Static)
        status.set_class(True, "error")
        status.update(message)
