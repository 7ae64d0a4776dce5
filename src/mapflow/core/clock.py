# src/mapflow/core/clock.py
"""Clock abstraction for time-dependent editor behaviour.

The only temporal concern in the core is ignoring a connect request that
repeats the previous one within the debounce window. Production code uses
SystemClock; tests inject MockClock and advance it explicitly.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of monotonic time in seconds."""

    def monotonic(self) -> float:
        """Return monotonic time in seconds (never goes backwards)."""
        ...


class SystemClock:
    """Clock backed by time.monotonic()."""

    def monotonic(self) -> float:
        return time.monotonic()


class MockClock:
    """Controllable clock for deterministic tests.

    Example:
        clock = MockClock()
        editor = WorkflowEditor(clock=clock)
        editor.connect("start", node.id)
        clock.advance(0.2)  # past the 100ms debounce window
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        """Move time forward.

        Raises:
            ValueError: If seconds is negative
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance clock by negative amount: {seconds}")
        self._current += seconds


DEFAULT_CLOCK: Clock = SystemClock()
