"""Producer/consumer event loop.

Two actors share one ordered channel:

* ``EventPump`` – a background thread that polls an ``InputSource`` with a
  bounded timeout and, independently, emits a ``Tick`` once per tick
  interval.  It only ever writes to the channel.
* ``EventLoop`` – the single consumer.  Each cycle it runs the network step
  (``AppState.prepare``), renders a snapshot, then applies at most one
  event.  All AppState mutation happens here.

The pump thread is a daemon and is never joined: it lives as long as the
process does, and exiting the process simply abandons it.  ``stop()`` only
asks it to finish its current poll and return.
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Union

from .logging import get_logger, log_context
from .modes import KeyInput
from .state import AppState
from .view import ViewSnapshot, snapshot

_log = get_logger("rudis.events")

DEFAULT_TICK_RATE = 0.2  # seconds


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class InputEvent:
    key: KeyInput


Event = Union[Tick, InputEvent]


class InputSource(Protocol):
    def poll(self, timeout: float) -> Optional[KeyInput]:
        """Wait up to *timeout* seconds for a key press."""
        ...


class KeyBuffer:
    """InputSource fed by a UI toolkit's key callbacks."""

    def __init__(self) -> None:
        self._keys: "queue.Queue[KeyInput]" = queue.Queue()

    def push(self, key: KeyInput) -> None:
        self._keys.put(key)

    def poll(self, timeout: float) -> Optional[KeyInput]:
        try:
            return self._keys.get(timeout=max(0.0, timeout))
        except queue.Empty:
            return None


class EventPump:
    """Background producer of Input and Tick events."""

    def __init__(self, source: InputSource, tick_rate: float = DEFAULT_TICK_RATE,
                 channel: Optional["queue.Queue[Event]"] = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.source = source
        self.tick_rate = tick_rate
        self.channel: "queue.Queue[Event]" = channel if channel is not None else queue.Queue()
        self._clock = clock
        self._last_tick = clock()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, daemon=True, name="rudis-input")
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()

    def pump_once(self) -> None:
        """One producer iteration: poll input, then tick if the interval elapsed."""
        timeout = max(0.0, self.tick_rate - (self._clock() - self._last_tick))
        key = self.source.poll(timeout)
        if key is not None:
            self.channel.put(InputEvent(key))
        if self._clock() - self._last_tick >= self.tick_rate:
            self.channel.put(Tick())
            self._last_tick = self._clock()

    def _run(self) -> None:
        while not self._stopped.is_set():
            try:
                self.pump_once()
            except Exception:
                _log.error("Input pump crashed", exc_info=True)
                return


class EventLoop:
    """Single consumer: prepare, render, apply one event, repeat."""

    def __init__(self, state: AppState, channel: "queue.Queue[Event]",
                 render: Callable[[ViewSnapshot], None],
                 visible_rows: Callable[[], int],
                 wait_timeout: Optional[float] = None) -> None:
        self.state = state
        self.channel = channel
        self.render = render
        self.visible_rows = visible_rows
        self.wait_timeout = wait_timeout

    def cycle(self) -> bool:
        """Run one render-and-input cycle. Returns whether the app is still running.

        An unexpected error from ``prepare`` or from applying an event is
        logged and shown on the status line; the loop keeps going.
        """
        rows = self.visible_rows()
        try:
            self.state.prepare(rows)
        except Exception as exc:
            self._report("prepare", exc)
        self.render(snapshot(self.state, rows))
        try:
            event = self.channel.get(timeout=self.wait_timeout)
        except queue.Empty:
            return self.state.running
        try:
            self.apply(event)
        except Exception as exc:
            self._report("apply", exc)
        return self.state.running

    def _report(self, step: str, exc: Exception) -> None:
        err = f"{type(exc).__name__}: {str(exc)[:100]}"
        _log.error(
            "Error in %s: %s", step, err, exc_info=True,
            extra={"context": log_context(mode=self.state.mode.value)},
        )
        self.state.status = f"Error in {step}: {err}"

    def apply(self, event: Event) -> None:
        if isinstance(event, InputEvent):
            effects = self.state.handle_input(event.key)
            if effects:
                _log.debug(
                    "Key %s -> %s", event.key.key, [e.kind.value for e in effects],
                    extra={"context": log_context(mode=self.state.mode.value)},
                )

    def run(self) -> None:
        while self.state.running:
            self.cycle()
        _log.info("Event loop stopped")
