"""Configuration system for rudis.

Reads/writes config from $HOME/.config/rudis/config.yml (or --config-file).
Also merges with a local .rudis.yml if found in the current directory
(local takes precedence over global config).

Config strings can include shell variables like ${REDIS_PASSWORD} which are
expanded at load time, so credentials don't have to live in the file.

The config defines:
  - version: schema version of the file ("1.0")
  - servers: ordered list of endpoints (name, host, port, username, password, db)
  - config: runtime settings (tick rate, SCAN count hint, key bindings, colors)
"""

from __future__ import annotations

import copy
import os
import re
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .logging import get_logger
from .modes import DEFAULT_KEY_BINDINGS
from .store import EndpointConfig

_log = get_logger("rudis.config")

SCHEMA_VERSION = "1.0"

DEFAULT_CONFIG_DIR = os.path.join(
    os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config")),
    "rudis",
)
DEFAULT_CONFIG_FILE = os.path.join(DEFAULT_CONFIG_DIR, "config.yml")
LOCAL_CONFIG_NAME = ".rudis.yml"

# Full default config. Written on first run, used as fallback for missing keys
DEFAULT_CONFIG: dict[str, Any] = {
    "version": SCHEMA_VERSION,
    "servers": [
        {
            "name": "local",
            "host": "${REDIS_HOST:-localhost}",
            "port": 6379,
            "username": None,
            "password": None,
            "db": 0,
        },
    ],
    "config": {
        "colorScheme": "nord",
        "tickRateMs": 200,
        "scanCount": 100,            # COUNT hint sent with every SCAN
        "socketTimeoutSecs": 5,
        "initialTab": 0,
        "keyBindings": dict(DEFAULT_KEY_BINDINGS),
    },
}

_KNOWN_TOP_LEVEL = {"version", "servers", "config"}
_KNOWN_CONFIG_KEYS = {
    "colorScheme", "tickRateMs", "scanCount", "socketTimeoutSecs",
    "initialTab", "keyBindings",
}
_KNOWN_SERVER_KEYS = {"name", "host", "port", "username", "password", "db"}


def _expand_env(value: str) -> str:
    """Expand shell-style ${VAR} and ${VAR:-default} in a string."""
    def _replacer(m: re.Match) -> str:
        var_expr = m.group(1)
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.environ.get(var_name, default)
        return os.environ.get(var_expr, "")
    return re.sub(r"\$\{([^}]+)\}", _replacer, value)


def _expand_config(obj: Any) -> Any:
    """Recursively expand env vars in all string values."""
    if isinstance(obj, str):
        return _expand_env(obj)
    elif isinstance(obj, dict):
        return {k: _expand_config(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_config(v) for v in obj]
    return obj


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep-merge override into base. Override values win; lists are replaced."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _edit_distance(a: str, b: str) -> int:
    """Compute Levenshtein edit distance between two strings."""
    if len(a) > len(b):
        a, b = b, a
    prev = list(range(len(a) + 1))
    for j in range(1, len(b) + 1):
        curr = [j] + [0] * len(a)
        for i in range(1, len(a) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            curr[i] = min(curr[i - 1] + 1, prev[i] + 1, prev[i - 1] + cost)
        prev = curr
    return prev[len(a)]


def _closest_match(key: str, valid_keys: set[str], max_distance: int = 3) -> str | None:
    """Suggest the closest valid key for a likely typo, or None."""
    best_match = None
    best_dist = max_distance + 1
    key_lower = key.lower()
    for candidate in sorted(valid_keys):
        cand_lower = candidate.lower()
        if key_lower == cand_lower:
            return candidate
        if abs(len(key_lower) - len(cand_lower)) > max_distance:
            continue
        dist = _edit_distance(key_lower, cand_lower)
        if dist < best_dist:
            best_dist = dist
            best_match = candidate
    return best_match if best_dist <= max_distance else None


def _unknown_key_warning(label: str, key: str, known: set[str]) -> str:
    suggest = _closest_match(key, known)
    hint = f" (did you mean '{suggest}'?)" if suggest else ""
    return f"Unknown {label} '{key}'{hint}; expected one of: {', '.join(sorted(known))}"


def _load_yaml(path: str) -> Optional[dict]:
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else None


@dataclass
class RudisConfig:
    """Parsed and expanded rudis configuration."""

    raw: dict[str, Any] = field(default_factory=dict)
    """The raw config as loaded from YAML (with env vars unexpanded)."""

    expanded: dict[str, Any] = field(default_factory=dict)
    """The config with all env vars expanded."""

    config_path: str = DEFAULT_CONFIG_FILE
    """Path to the config file."""

    validation_warnings: list[str] = field(default_factory=list)
    """Warnings from the last validation run."""

    @classmethod
    def reset(cls, config_path: Optional[str] = None) -> "RudisConfig":
        """Delete the config file and regenerate it with defaults."""
        path = config_path or DEFAULT_CONFIG_FILE
        if os.path.isfile(path):
            os.unlink(path)
            _log.info("Deleted config %s", path)
        return cls.load(path)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "RudisConfig":
        """Load config from file, creating it with defaults if not found.

        Merge order (later takes precedence):
        1. DEFAULT_CONFIG (built-in defaults)
        2. ~/.config/rudis/config.yml (user config)
        3. .rudis.yml in cwd (project-local)

        CLI flags override all of the above at runtime.
        """
        path = config_path or DEFAULT_CONFIG_FILE
        raw = copy.deepcopy(DEFAULT_CONFIG)

        if os.path.isfile(path):
            try:
                user_config = _load_yaml(path)
                if user_config:
                    raw = _deep_merge(raw, user_config)
            except (OSError, yaml.YAMLError) as e:
                _log.warning("Failed to load config from %s: %s", path, e)
        else:
            try:
                os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
                with open(path, "w") as f:
                    yaml.dump(raw, f, default_flow_style=False, sort_keys=False)
                _log.info("Created default config %s", path)
            except OSError as e:
                _log.warning("Failed to write default config to %s: %s", path, e)

        local_path = os.path.join(os.getcwd(), LOCAL_CONFIG_NAME)
        if os.path.isfile(local_path) and os.path.abspath(local_path) != os.path.abspath(path):
            try:
                local_config = _load_yaml(local_path)
                if local_config:
                    raw = _deep_merge(raw, local_config)
                    _log.info("Merged local config %s", local_path)
            except (OSError, yaml.YAMLError) as e:
                _log.warning("Failed to load local config from %s: %s", local_path, e)

        cfg = cls(raw=raw, expanded=_expand_config(raw), config_path=path)
        cfg._validate()
        return cfg

    def _validate(self) -> None:
        """Validate config structure and collect warnings. Never raises."""
        warnings: list[str] = []

        for key in self.raw:
            if key not in _KNOWN_TOP_LEVEL:
                warnings.append(_unknown_key_warning("top-level key", key, _KNOWN_TOP_LEVEL))

        version = str(self.raw.get("version", ""))
        if version != SCHEMA_VERSION:
            warnings.append(f"Unsupported config version '{version}', expected '{SCHEMA_VERSION}'")

        runtime = self.raw.get("config", {})
        if isinstance(runtime, dict):
            for key in runtime:
                if key not in _KNOWN_CONFIG_KEYS:
                    warnings.append(_unknown_key_warning("config key", f"config.{key}",
                                                         {f"config.{k}" for k in _KNOWN_CONFIG_KEYS}))
            bindings = runtime.get("keyBindings", {})
            if isinstance(bindings, dict):
                for action in bindings:
                    if action not in DEFAULT_KEY_BINDINGS:
                        warnings.append(_unknown_key_warning("key binding", action,
                                                             set(DEFAULT_KEY_BINDINGS)))
            tick = runtime.get("tickRateMs", 200)
            if not isinstance(tick, (int, float)) or tick <= 0:
                warnings.append(f"config.tickRateMs ({tick}) must be a positive number")

        servers = self.expanded.get("servers", [])
        if not isinstance(servers, list) or not servers:
            warnings.append("No servers configured; add at least one entry under 'servers'")
            servers = []
        for idx, server in enumerate(servers):
            if not isinstance(server, dict):
                warnings.append(f"servers[{idx}] should be a mapping, got {type(server).__name__}")
                continue
            label = server.get("name") or f"servers[{idx}]"
            for key in server:
                if key not in _KNOWN_SERVER_KEYS:
                    warnings.append(_unknown_key_warning(f"key in server '{label}'", key,
                                                         _KNOWN_SERVER_KEYS))
            missing = [k for k in ("name", "host") if not server.get(k)]
            if missing:
                warnings.append(f"Server '{label}' is missing keys: {', '.join(missing)}")
            port = server.get("port", 6379)
            try:
                port_ok = 0 < int(port) < 65536
            except (TypeError, ValueError):
                port_ok = False
            if not port_ok:
                warnings.append(f"Server '{label}' has invalid port {port!r}")

        self.validation_warnings = list(warnings)
        for w in warnings:
            _log.warning("Config: %s", w)

    def save(self) -> None:
        """Write the raw config back to disk."""
        os.makedirs(os.path.dirname(self.config_path) or ".", exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(self.raw, f, default_flow_style=False, sort_keys=False)
        self.expanded = _expand_config(self.raw)

    # ─── Accessors ──────────────────────────────────────────────────

    @property
    def runtime(self) -> dict[str, Any]:
        return self.expanded.get("config", {})

    @property
    def servers(self) -> list[EndpointConfig]:
        """Valid server entries as EndpointConfig, in file order.

        Entries that failed validation (no name/host, bad port) are skipped.
        """
        result: list[EndpointConfig] = []
        for server in self.expanded.get("servers", []) or []:
            if not isinstance(server, dict) or not server.get("name") or not server.get("host"):
                continue
            try:
                port = int(server.get("port", 6379))
                db = int(server.get("db", 0) or 0)
            except (TypeError, ValueError):
                continue
            if not 0 < port < 65536:
                continue
            result.append(EndpointConfig(
                name=str(server["name"]),
                host=str(server["host"]),
                port=port,
                username=server.get("username") or None,
                password=server.get("password") or None,
                db=db,
            ))
        return result

    @property
    def tick_rate(self) -> float:
        """Tick interval in seconds."""
        try:
            ms = float(self.runtime.get("tickRateMs", 200))
        except (TypeError, ValueError):
            return 0.2
        return ms / 1000.0 if ms > 0 else 0.2

    @property
    def scan_count(self) -> Optional[int]:
        value = self.runtime.get("scanCount", 100)
        try:
            count = int(value)
        except (TypeError, ValueError):
            return None
        return count if count > 0 else None

    @property
    def socket_timeout(self) -> float:
        try:
            return max(0.1, float(self.runtime.get("socketTimeoutSecs", 5)))
        except (TypeError, ValueError):
            return 5.0

    @property
    def initial_tab(self) -> int:
        try:
            return int(self.runtime.get("initialTab", 0))
        except (TypeError, ValueError):
            return 0

    @property
    def color_scheme(self) -> str:
        return str(self.runtime.get("colorScheme", "nord"))

    @property
    def key_bindings(self) -> dict[str, str]:
        """User-configurable key bindings. Returns action→keys mapping."""
        user = self.runtime.get("keyBindings", {}) or {}
        merged = {**DEFAULT_KEY_BINDINGS, **{k: str(v) for k, v in user.items()}}
        return merged
