"""Modal input handling.

The app is either browsing or typing a filter.  While browsing, the active
session's own "viewing a key" flag further narrows what keys do.  All of
that is captured by ``transition()``, a pure function from
``(InputState, KeyInput)`` to ``(InputState, [Effect])``; AppState applies
the effects.  Nothing here touches the terminal or the network.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional


class Mode(enum.Enum):
    BROWSE = "browse"
    FILTER_ENTRY = "filter_entry"


@dataclass(frozen=True)
class KeyInput:
    """One key press. ``key`` uses Textual key names (``j``, ``enter``, ``left``)."""

    key: str
    character: Optional[str] = None

    @property
    def is_printable(self) -> bool:
        return (
            self.character is not None
            and len(self.character) == 1
            and self.character.isprintable()
        )


# Browse-mode actions, named the way the keyBindings config names them.
QUIT = "quit"
PREV_TAB = "prevTab"
NEXT_TAB = "nextTab"
CURSOR_DOWN = "cursorDown"
CURSOR_UP = "cursorUp"
CONNECT = "connect"
FILTER = "filter"
CONFIRM = "confirm"
CANCEL = "cancel"

ACTIONS = (QUIT, PREV_TAB, NEXT_TAB, CURSOR_DOWN, CURSOR_UP, CONNECT, FILTER, CONFIRM, CANCEL)

# Comma-separated key names per action.
DEFAULT_KEY_BINDINGS: dict[str, str] = {
    QUIT: "q",
    PREV_TAB: "h,left",
    NEXT_TAB: "l,right",
    CURSOR_DOWN: "j,down",
    CURSOR_UP: "k,up",
    CONNECT: "c",
    FILTER: "f",
    CONFIRM: "enter",
    CANCEL: "escape",
}


def resolve_action(key: str, bindings: Mapping[str, str] = DEFAULT_KEY_BINDINGS) -> Optional[str]:
    """Map a key name to the browse action bound to it, if any."""
    for action in ACTIONS:
        keys = bindings.get(action, DEFAULT_KEY_BINDINGS[action])
        if key in (k.strip() for k in str(keys).split(",")):
            return action
    return None


class EffectKind(enum.Enum):
    STOP = "stop"
    PREV_TAB = "prev_tab"
    NEXT_TAB = "next_tab"
    SELECT_NEXT = "select_next"
    SELECT_PREV = "select_prev"
    SCROLL_DOWN = "scroll_down"
    SCROLL_UP = "scroll_up"
    CONNECT = "connect"
    ENTER_KEY_VIEW = "enter_key_view"
    EXIT_KEY_VIEW = "exit_key_view"
    APPLY_FILTER = "apply_filter"


@dataclass(frozen=True)
class Effect:
    kind: EffectKind
    argument: str = ""


@dataclass(frozen=True)
class InputState:
    """Everything ``transition()`` needs to know about the app.

    ``connected``, ``viewing`` and ``pattern`` describe the active tab and
    are read-only inputs; only ``mode`` and ``filter_buffer`` change.
    """

    mode: Mode = Mode.BROWSE
    filter_buffer: str = ""
    connected: bool = False
    viewing: bool = False
    pattern: str = "*"
    bindings: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_KEY_BINDINGS))


def transition(state: InputState, event: KeyInput) -> tuple[InputState, list[Effect]]:
    """Apply one key press. Keys with no meaning in the current state are ignored."""
    if state.mode is Mode.FILTER_ENTRY:
        return _filter_entry(state, event)
    return _browse(state, event)


def _filter_entry(state: InputState, event: KeyInput) -> tuple[InputState, list[Effect]]:
    if event.key == "escape":
        return replace(state, mode=Mode.BROWSE, filter_buffer=""), []
    if event.key == "backspace":
        return replace(state, filter_buffer=state.filter_buffer[:-1]), []
    if event.key == "enter":
        effects = [Effect(EffectKind.APPLY_FILTER, state.filter_buffer)] if state.connected else []
        return replace(state, mode=Mode.BROWSE), effects
    if event.is_printable:
        return replace(state, filter_buffer=state.filter_buffer + event.character), []
    return state, []


def _browse(state: InputState, event: KeyInput) -> tuple[InputState, list[Effect]]:
    action = resolve_action(event.key, state.bindings)

    if action == QUIT:
        if state.connected and state.viewing:
            return state, [Effect(EffectKind.EXIT_KEY_VIEW)]
        return state, [Effect(EffectKind.STOP)]
    if action == PREV_TAB:
        return state, [Effect(EffectKind.PREV_TAB)]
    if action == NEXT_TAB:
        return state, [Effect(EffectKind.NEXT_TAB)]
    if action == CONNECT:
        return state, [Effect(EffectKind.CONNECT)]

    if not state.connected:
        return state, []

    if action == CURSOR_DOWN:
        kind = EffectKind.SCROLL_DOWN if state.viewing else EffectKind.SELECT_NEXT
        return state, [Effect(kind)]
    if action == CURSOR_UP:
        kind = EffectKind.SCROLL_UP if state.viewing else EffectKind.SELECT_PREV
        return state, [Effect(kind)]
    if action == FILTER:
        return replace(state, mode=Mode.FILTER_ENTRY, filter_buffer=state.pattern), []
    if action == CONFIRM and not state.viewing:
        return state, [Effect(EffectKind.ENTER_KEY_VIEW)]
    if action == CANCEL and state.viewing:
        return state, [Effect(EffectKind.EXIT_KEY_VIEW)]
    return state, []
