"""Color schemes and CSS generation for the rudis TUI.

Supports Nord (default), Tokyo Night, Catppuccin, and Dracula themes.
Each scheme defines colors for backgrounds, text, accents, and highlights.
"""

from __future__ import annotations


# ─── Color Schemes ────────────────────────────────────────────────────────

COLOR_SCHEMES: dict[str, dict[str, str]] = {
    "nord": {
        "bg": "#2e3440",
        "bg_alt": "#3b4252",
        "fg": "#eceff4",
        "fg_dim": "#616e88",
        "accent": "#88c0d0",
        "success": "#a3be8c",
        "warning": "#ebcb8b",
        "error": "#bf616a",
        "highlight_bg": "#434c5e",
        "border": "#4c566a",
    },
    "tokyo-night": {
        "bg": "#1a1b26",
        "bg_alt": "#24283b",
        "fg": "#a9b1d6",
        "fg_dim": "#565f89",
        "accent": "#7aa2f7",
        "success": "#9ece6a",
        "warning": "#e0af68",
        "error": "#f7768e",
        "highlight_bg": "#292e42",
        "border": "#414868",
    },
    "catppuccin": {
        "bg": "#1e1e2e",
        "bg_alt": "#313244",
        "fg": "#cdd6f4",
        "fg_dim": "#585b70",
        "accent": "#89b4fa",
        "success": "#a6e3a1",
        "warning": "#f9e2af",
        "error": "#f38ba8",
        "highlight_bg": "#45475a",
        "border": "#585b70",
    },
    "dracula": {
        "bg": "#282a36",
        "bg_alt": "#44475a",
        "fg": "#f8f8f2",
        "fg_dim": "#6272a4",
        "accent": "#8be9fd",
        "success": "#50fa7b",
        "warning": "#f1fa8c",
        "error": "#ff5555",
        "highlight_bg": "#44475a",
        "border": "#6272a4",
    },
}

DEFAULT_SCHEME = "nord"


def get_scheme(name: str = DEFAULT_SCHEME) -> dict[str, str]:
    """Get a color scheme by name, with fallback to default."""
    return COLOR_SCHEMES.get(name, COLOR_SCHEMES[DEFAULT_SCHEME])


def build_css(scheme_name: str = DEFAULT_SCHEME) -> str:
    """Build the Textual CSS using a named color scheme."""
    s = get_scheme(scheme_name)
    return f"""
    Screen {{
        background: {s['bg']};
        color: {s['fg']};
    }}

    /* ─── Tab bar ───────────────────────────────────────────── */

    #tab-bar {{
        dock: top;
        height: 1;
        width: 1fr;
        background: {s['bg_alt']};
        padding: 0 1;
    }}

    /* ─── Key table / key view ──────────────────────────────── */

    #body {{
        height: 1fr;
        width: 1fr;
        border: round {s['border']};
        border-title-color: {s['accent']};
        border-subtitle-color: {s['warning']};
        padding: 0 1;
        background: {s['bg']};
    }}

    #body.disconnected {{
        content-align: center middle;
        text-align: center;
    }}

    /* ─── Filter entry ──────────────────────────────────────── */

    #filter-box {{
        dock: bottom;
        height: 3;
        margin: 0 8;
        border: round {s['warning']};
        border-title-color: {s['warning']};
        background: {s['bg_alt']};
        padding: 0 1;
        display: none;
    }}

    /* ─── Status line ───────────────────────────────────────── */

    #status-line {{
        dock: bottom;
        height: 1;
        width: 1fr;
        color: {s['fg_dim']};
        padding: 0 1;
    }}

    #status-line.error {{
        color: {s['error']};
    }}
    """
