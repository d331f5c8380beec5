"""Frame rendering for the rudis TUI.

Pure functions from a ViewSnapshot to Rich renderables / markup strings.
Key names and values come from the store, so they are always wrapped in
``Text`` or escaped, never interpreted as markup.
"""

from __future__ import annotations

import json

from rich.console import Group, RenderableType
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..view import ViewSnapshot

TTL_COLUMN_WIDTH = 6
TYPE_COLUMN_WIDTH = 6
SIZE_COLUMN_WIDTH = 7


def pretty_value(raw: str) -> str:
    """Indent JSON values for display; anything else is shown as-is."""
    try:
        parsed = json.loads(raw)
    except (ValueError, TypeError):
        return raw
    return json.dumps(parsed, indent=2, ensure_ascii=False)


def render_tab_bar(snap: ViewSnapshot, s: dict[str, str]) -> str:
    """Tab bar markup. Active tab is highlighted; connected tabs get a dot."""
    parts = []
    for idx, tab in enumerate(snap.tabs):
        dot = f" [{s['success']}]●[/{s['success']}]" if tab.connected else ""
        name = escape(tab.name)
        if idx == snap.active_tab:
            parts.append(f"[bold {s['warning']}]> {name}[/bold {s['warning']}]{dot}")
        else:
            parts.append(f"[dim]  {name}[/dim]{dot}")
    return "  ".join(parts)


def render_disconnected(snap: ViewSnapshot, s: dict[str, str]) -> str:
    return (
        "Server is not connected\n\n"
        f"Host: [{s['warning']}]{escape(snap.address)}[/{s['warning']}]\n\n"
        f"Press [{s['warning']}]c[/{s['warning']}] to connect"
    )


def render_key_table(snap: ViewSnapshot, s: dict[str, str]) -> RenderableType:
    table = Table(
        box=None, expand=True, show_edge=False, pad_edge=False,
        header_style=f"bold {s['warning']}",
    )
    table.add_column("Key", ratio=1, no_wrap=True, overflow="ellipsis")
    table.add_column("Type", width=TYPE_COLUMN_WIDTH, no_wrap=True, style="dim")
    table.add_column("Size", width=SIZE_COLUMN_WIDTH, justify="right", no_wrap=True, style="dim")
    table.add_column("TTL", width=TTL_COLUMN_WIDTH, justify="right", no_wrap=True)
    for offset, row in enumerate(snap.rows):
        index = snap.first_row + offset
        style = f"bold {s['accent']} on {s['highlight_bg']}" if index == snap.selected else None
        table.add_row(Text(row.key), Text(row.value_type), Text(row.size), Text(row.ttl), style=style)
    if not snap.rows:
        placeholder = "(no keys)" if snap.scan_complete else "(scanning...)"
        table.add_row(Text(placeholder, style="dim"), Text(""), Text(""), Text(""))
    return table


def render_key_view(snap: ViewSnapshot, s: dict[str, str]) -> RenderableType:
    meta = snap.view_meta
    header = Text()
    if meta is not None:
        header.append("type ", style="dim")
        header.append(meta.value_type, style=s["accent"])
        header.append("  ttl ", style="dim")
        header.append(meta.ttl, style=s["accent"])
        header.append("  size ", style="dim")
        header.append(meta.size, style=s["accent"])
    if snap.view_value is None:
        body = Text("(no value)", style="dim")
    else:
        lines = pretty_value(snap.view_value).splitlines()
        body = Text("\n".join(lines[snap.scroll:]))
    return Group(header, Text(""), body)


def body_titles(snap: ViewSnapshot) -> tuple[str, str]:
    """Border title and subtitle for the body panel."""
    name = escape(snap.endpoint_name)
    if not snap.connected:
        return f" {name} ", ""
    if snap.viewing:
        return f" {name} - {escape(snap.viewing_key or '')} ", ""
    more = "" if snap.scan_complete else "+"
    return (
        f" {name} - {escape(snap.address)} ",
        f" f {escape(snap.pattern)}  {snap.total_keys}{more} keys ",
    )


def render_status(snap: ViewSnapshot) -> str:
    if snap.status:
        return escape(snap.status)
    if snap.viewing:
        return "j/k scroll · q/esc back"
    if snap.connected:
        return "h/l tab · j/k select · enter open · f filter · q quit"
    return "h/l tab · c connect · q quit"
