# src/stagecraft/engine/clock.py
"""Clock abstraction for testable trace timestamps.

Production code uses SystemClock (the default).
Tests inject MockClock to control the time stamped on trace entries.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Abstract wall clock for trace entries."""

    def now(self) -> datetime:
        """Return the current time as an aware datetime."""
        ...


class SystemClock:
    """Production clock using the local system time."""

    def now(self) -> datetime:
        return datetime.now(UTC).astimezone()


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start=datetime(2024, 1, 1, 9, 30, tzinfo=UTC))
        engine = PreviewEngine(registry, clock=clock)
        clock.advance(1.5)
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._current = start if start is not None else datetime(2000, 1, 1, tzinfo=UTC)

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance mock time by specified seconds.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += timedelta(seconds=seconds)


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
