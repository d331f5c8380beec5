"""
rudis - browse the key space of one or more Redis servers.

Usage:
    rudis                              # Start the TUI on the configured servers
    rudis --tab 2                      # Start on the third server tab
    rudis --dump --pattern 'user:*'    # Print matching keys and TTLs, no TUI
    rudis --show-config                # Print config path and warnings
    rudis --reset-config               # Delete config.yml and regenerate defaults
"""

from __future__ import annotations

import argparse
import functools
import sys
from typing import Optional

from .config import RudisConfig
from .logging import CLI_LOG, get_logger, log_context
from .scanner import DEFAULT_PATTERN
from .session import Endpoint, EndpointRegistry
from .state import AppState
from .store import StoreError, open_connection

_log = get_logger("rudis.main")
_cli_log = get_logger("rudis.cli", CLI_LOG, json_format=False)


def build_registry(config: RudisConfig, initial_tab: Optional[int] = None) -> EndpointRegistry:
    """Create one Endpoint per configured server. Performs no I/O."""
    connector = functools.partial(open_connection, socket_timeout=config.socket_timeout)
    endpoints = [
        Endpoint(server, connector=connector, scan_count=config.scan_count)
        for server in config.servers
    ]
    tab = config.initial_tab if initial_tab is None else initial_tab
    return EndpointRegistry(endpoints, initial_tab=tab)


def dump_keys(registry: EndpointRegistry, pattern: str = DEFAULT_PATTERN) -> int:
    """Scan the current tab's server to completion and print ``key -> ttl`` lines."""
    endpoint = registry.current()
    try:
        endpoint.connect()
        session = endpoint.session
        session.scan(pattern)
        while not session.is_complete():
            session.advance()
    except StoreError as exc:
        _cli_log.error("Dump of %s failed: %s", endpoint.name, exc)
        print(f"Error: {endpoint.name} ({endpoint.config.address}): {exc}", file=sys.stderr)
        return 1
    finally:
        endpoint.disconnect()

    keys = session.keys()
    for key in keys:
        meta = session.metadata(key)
        print(f"{key} -> {meta.ttl_human() if meta else 'N/A'}")
    _cli_log.info("Dumped %d keys from %s matching %s", len(keys), endpoint.name, pattern)
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="rudis",
        description="Browse the key space of Redis servers",
    )
    parser.add_argument("--config-file", default=None, metavar="PATH",
                        help="Config file (default: ~/.config/rudis/config.yml)")
    parser.add_argument("--reset-config", action="store_true",
                        help="Delete the config file and regenerate it with defaults")
    parser.add_argument("--show-config", action="store_true",
                        help="Print the config path and validation warnings, then exit")
    parser.add_argument("--tab", type=int, default=None, metavar="N",
                        help="Start on server tab N (0-based, clamped)")
    parser.add_argument("--tick-rate", type=int, default=None, metavar="MS",
                        help="Tick interval in milliseconds")
    parser.add_argument("--dump", action="store_true",
                        help="Print all keys matching --pattern on the selected tab and exit")
    parser.add_argument("--pattern", default=DEFAULT_PATTERN,
                        help="Glob pattern for --dump (default: *)")
    args = parser.parse_args(argv)

    if args.reset_config:
        config = RudisConfig.reset(args.config_file)
    else:
        config = RudisConfig.load(args.config_file)

    if args.show_config:
        print(f"Config: {config.config_path}")
        for server in config.servers:
            print(f"  {server.name}: {server.address}")
        for warning in config.validation_warnings:
            print(f"  WARNING: {warning}")
        return

    if not config.servers:
        print(f"Error: no usable servers in {config.config_path}", file=sys.stderr)
        for warning in config.validation_warnings:
            print(f"  {warning}", file=sys.stderr)
        sys.exit(1)

    registry = build_registry(config, args.tab)

    if args.dump:
        sys.exit(dump_keys(registry, args.pattern))

    # Imported late so --dump works without a terminal.
    from .tui import RudisApp

    tick_rate = args.tick_rate / 1000.0 if args.tick_rate and args.tick_rate > 0 else config.tick_rate
    state = AppState(registry, bindings=config.key_bindings)
    app = RudisApp(state, tick_rate=tick_rate, color_scheme=config.color_scheme)
    _log.info(
        "Starting TUI with %d server(s)", registry.count(),
        extra={"context": log_context(endpoint=registry.current().name, tick_rate=tick_rate)},
    )
    try:
        app.run()
    finally:
        registry.disconnect_all()


if __name__ == "__main__":
    main()
