"""Shared helpers for the rudis TUI."""

from __future__ import annotations

import functools

from ..logging import get_logger, log_context

_log = get_logger("rudis.tui.widgets")


# ─── Safe action decorator ────────────────────────────────────────────────

def _safe_action(fn):
    """Decorator that catches exceptions in TUI handlers.

    Logs the error and shows it on the status line instead of crashing the app.
    """

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except Exception as exc:
            err = f"{type(exc).__name__}: {str(exc)[:100]}"
            _log.error(
                "Error in %s: %s", fn.__name__, err,
                exc_info=True,
                extra={"context": log_context(handler=fn.__name__)},
            )
            try:
                self.show_error(f"Error in {fn.__name__}: {err}")
            except Exception:
                pass
    return wrapper
