"""Application state owned by the single consumer thread.

AppState wires the pure input transition (``rudis.modes``) to the
endpoint registry: it feeds key presses through ``transition()``, applies
the resulting effects to the active tab, and runs the once-per-cycle
network step (``prepare``) before the renderer reads anything.

Store failures never escape: they end up in ``status`` and in the log.
"""

from __future__ import annotations

import time
from typing import Callable, Mapping, Optional

from .logging import get_logger, log_context
from .modes import (
    DEFAULT_KEY_BINDINGS,
    Effect,
    EffectKind,
    InputState,
    KeyInput,
    Mode,
    transition,
)
from .scanner import DEFAULT_PATTERN
from .session import EndpointRegistry, Session
from .store import StoreError

_log = get_logger("rudis.state")


class AppState:
    """Everything the renderer shows, plus the handlers that mutate it."""

    def __init__(self, registry: EndpointRegistry,
                 bindings: Optional[Mapping[str, str]] = None) -> None:
        self.registry = registry
        self.mode = Mode.BROWSE
        self.filter_buffer = ""
        self.running = True
        self.status = ""
        self.bindings: dict[str, str] = {**DEFAULT_KEY_BINDINGS, **(bindings or {})}
        self._handlers: dict[EffectKind, Callable[[Effect], None]] = {
            EffectKind.STOP: lambda e: self.stop(),
            EffectKind.PREV_TAB: lambda e: self.registry.prev_tab(),
            EffectKind.NEXT_TAB: lambda e: self.registry.next_tab(),
            EffectKind.CONNECT: lambda e: self.registry.current().connect(),
            EffectKind.SELECT_NEXT: lambda e: self._session().select_next(),
            EffectKind.SELECT_PREV: lambda e: self._session().select_prev(),
            EffectKind.SCROLL_DOWN: lambda e: self._session().scroll_down(),
            EffectKind.SCROLL_UP: lambda e: self._session().scroll_up(),
            EffectKind.ENTER_KEY_VIEW: lambda e: self._session().enter_key_view(),
            EffectKind.EXIT_KEY_VIEW: lambda e: self._session().exit_key_view(),
            EffectKind.APPLY_FILTER: lambda e: self._session().scan(e.argument),
        }

    # ─── Queries ──────────────────────────────────────────────────

    def active_session(self) -> Optional[Session]:
        return self.registry.current().session

    def _session(self) -> Session:
        session = self.active_session()
        if session is None:
            # transition() only emits session effects for connected tabs
            raise RuntimeError("active tab is not connected")
        return session

    def input_state(self) -> InputState:
        session = self.active_session()
        return InputState(
            mode=self.mode,
            filter_buffer=self.filter_buffer,
            connected=session is not None,
            viewing=session is not None and session.is_viewing,
            pattern=session.pattern if session is not None else DEFAULT_PATTERN,
            bindings=self.bindings,
        )

    # ─── Mutation ─────────────────────────────────────────────────

    def stop(self) -> None:
        self.running = False

    def handle_input(self, event: KeyInput) -> list[Effect]:
        """Run one key press through the transition table and apply it."""
        new_state, effects = transition(self.input_state(), event)
        self.mode = new_state.mode
        self.filter_buffer = new_state.filter_buffer
        for effect in effects:
            if not self._apply(effect):
                break
        return effects

    def _apply(self, effect: Effect) -> bool:
        endpoint = self.registry.current()
        start = time.time()
        try:
            self._handlers[effect.kind](effect)
        except StoreError as exc:
            self.status = f"{effect.kind.value} failed on {endpoint.name}: {exc}"
            _log.error(
                "Effect %s failed: %s", effect.kind.value, exc,
                extra={"context": log_context(
                    endpoint=endpoint.name, argument=effect.argument,
                    duration_ms=(time.time() - start) * 1000,
                )},
            )
            return False
        self.status = ""
        return True

    def prepare(self, visible_rows: int) -> None:
        """Do this cycle's network work so rendering can stay pure.

        Browsing pulls pages until ``visible_rows`` keys are cached; viewing
        a key re-reads its value.
        """
        session = self.active_session()
        if session is None:
            return
        endpoint = self.registry.current()
        try:
            if session.is_viewing:
                session.fetch_view_value()
            else:
                pages = session.pull_to_target(visible_rows)
                if pages:
                    _log.debug(
                        "Pulled %d page(s) to fill %d rows", pages, visible_rows,
                        extra={"context": log_context(endpoint=endpoint.name,
                                                      pattern=session.pattern)},
                    )
        except StoreError as exc:
            message = f"scan failed on {endpoint.name}: {exc}"
            # Retried every cycle; only log when the failure changes.
            if message != self.status:
                _log.error(
                    "Pagination failed: %s", exc,
                    extra={"context": log_context(endpoint=endpoint.name,
                                                  pattern=session.pattern)},
                )
            self.status = message
