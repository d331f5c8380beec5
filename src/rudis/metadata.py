"""Per-key metadata shown in the key table.

Different discovery calls fill different fields (a scan page only looks up
the TTL, opening a key also asks for its type and memory usage), so every
field is optional and renders as a placeholder when unknown.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Human TTL thresholds, in seconds. Each unit kicks in a little before the
# next natural boundary, so 3600s reads "1h" rather than "60m".
MINUTE_THRESHOLD = 50
HOUR_THRESHOLD = 50 * 60
DAY_THRESHOLD = 23 * 60 * 60
WEEK_THRESHOLD = 6 * 24 * 60 * 60
MONTH_THRESHOLD = 4 * 7 * 24 * 60 * 60
YEAR_THRESHOLD = 12 * 30 * 24 * 60 * 60

_TTL_UNITS = [
    (YEAR_THRESHOLD, "y"),
    (MONTH_THRESHOLD, "M"),
    (WEEK_THRESHOLD, "w"),
    (DAY_THRESHOLD, "d"),
    (HOUR_THRESHOLD, "h"),
    (MINUTE_THRESHOLD, "m"),
]

KB = 1024
MB = 1024 * KB
GB = 1024 * MB


@dataclass
class KeyMetadata:
    """What we know about one key. ``None`` means unknown."""

    value_type: Optional[str] = None
    ttl: Optional[int] = None       # seconds remaining, None = no expiry / unknown
    size: Optional[int] = None      # bytes

    def type_label(self) -> str:
        return self.value_type if self.value_type else "-"

    def ttl_human(self) -> str:
        """Compact TTL like ``10s``, ``2h``, ``3w``; ``N/A`` without a TTL."""
        if self.ttl is None:
            return "N/A"
        for threshold, unit in _TTL_UNITS:
            if self.ttl > threshold:
                return f"{self.ttl // threshold}{unit}"
        return f"{self.ttl}s"

    def size_human(self) -> str:
        if self.size is None:
            return "-"
        if self.size < KB:
            return f"{self.size}B"
        if self.size < MB:
            return f"{self.size // KB}KB"
        if self.size < GB:
            return f"{self.size // MB}MB"
        return f"{self.size // GB}GB"
