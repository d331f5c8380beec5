"""Read-only projection of AppState for the renderer.

``snapshot()`` copies out exactly what one frame needs.  It never talks to
the store, so the consumer thread can hand the result to the UI thread and
carry on mutating AppState.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .modes import Mode

if TYPE_CHECKING:
    from .metadata import KeyMetadata
    from .state import AppState


@dataclass(frozen=True)
class TabInfo:
    name: str
    connected: bool


@dataclass(frozen=True)
class KeyRow:
    key: str
    ttl: str
    value_type: str
    size: str


@dataclass(frozen=True)
class ViewSnapshot:
    tabs: tuple[TabInfo, ...]
    active_tab: int
    endpoint_name: str
    address: str
    connected: bool
    mode: Mode
    filter_buffer: str = ""
    status: str = ""
    pattern: str = ""
    rows: tuple[KeyRow, ...] = ()
    first_row: int = 0            # index of rows[0] in the full key list
    total_keys: int = 0
    scan_complete: bool = False
    selected: Optional[int] = None
    viewing_key: Optional[str] = None
    view_meta: Optional[KeyRow] = None
    view_value: Optional[str] = None
    scroll: int = 0

    @property
    def viewing(self) -> bool:
        return self.viewing_key is not None


def visible_window(total: int, selected: Optional[int], height: int) -> tuple[int, int]:
    """Slice ``[start, end)`` of the key list that keeps *selected* on screen."""
    height = max(1, height)
    start = 0
    if selected is not None and selected >= height:
        start = selected - height + 1
    return start, min(total, start + height)


def _row(key: str, meta: Optional["KeyMetadata"]) -> KeyRow:
    if meta is None:
        return KeyRow(key=key, ttl="N/A", value_type="-", size="-")
    return KeyRow(key=key, ttl=meta.ttl_human(), value_type=meta.type_label(),
                  size=meta.size_human())


def snapshot(state: "AppState", visible_rows: int) -> ViewSnapshot:
    registry = state.registry
    endpoint = registry.current()
    tabs = tuple(TabInfo(name=e.name, connected=e.is_connected) for e in registry.endpoints)
    base = dict(
        tabs=tabs,
        active_tab=registry.current_tab,
        endpoint_name=endpoint.name,
        address=endpoint.config.address,
        mode=state.mode,
        filter_buffer=state.filter_buffer,
        status=state.status,
    )

    session = endpoint.session
    if session is None:
        return ViewSnapshot(connected=False, **base)

    if session.is_viewing:
        key = session.viewing_key
        return ViewSnapshot(
            connected=True,
            pattern=session.pattern,
            total_keys=session.count(),
            scan_complete=session.is_complete(),
            selected=session.selected,
            viewing_key=key,
            view_meta=_row(key, session.metadata(key)),
            view_value=session.view_value,
            scroll=session.scroll,
            **base,
        )

    keys = session.keys()
    start, end = visible_window(len(keys), session.selected, visible_rows)
    rows = tuple(_row(k, session.metadata(k)) for k in keys[start:end])
    return ViewSnapshot(
        connected=True,
        pattern=session.pattern,
        rows=rows,
        first_row=start,
        total_keys=len(keys),
        scan_complete=session.is_complete(),
        selected=session.selected,
        **base,
    )
