"""rudis TUI package.

Modules:
    themes  - Color schemes (Nord, Tokyo Night, Catppuccin, Dracula) and CSS generation
    views   - Pure snapshot → Rich renderable functions
    widgets - _safe_action decorator
    app     - RudisApp (main Textual App)
"""

from .themes import COLOR_SCHEMES, DEFAULT_SCHEME, get_scheme, build_css
from .widgets import _safe_action
from .app import RudisApp

__all__ = [
    "COLOR_SCHEMES",
    "DEFAULT_SCHEME",
    "get_scheme",
    "build_css",
    "_safe_action",
    "RudisApp",
]
