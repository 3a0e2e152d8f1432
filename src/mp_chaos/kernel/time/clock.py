"""Kernel time – Clock port, SystemClock and SimulatedClock."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Port: source of span boundaries and edge start times."""

    def now(self) -> datetime: ...
    def timestamp(self) -> float: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)

    def timestamp(self) -> float:
        return datetime.now(UTC).timestamp()


class SimulatedClock:
    """Deterministic clock for simulated requests.

    Every :meth:`now` read returns the current instant and then moves it
    forward by ``tick``, so span boundaries taken one after another are
    strictly ordered. :meth:`advance` moves time by a simulated wait, which is
    how an instant sleeper makes injected latency visible in span durations.
    :meth:`timestamp` reads without ticking.
    """

    def __init__(self, start: datetime, tick: timedelta = timedelta(0)) -> None:
        if start.tzinfo is None:
            raise ValueError("start must be timezone-aware")
        if tick < timedelta(0):
            raise ValueError("tick must not be negative")
        self._current = start
        self._tick = tick

    def now(self) -> datetime:
        current = self._current
        self._current += self._tick
        return current

    def timestamp(self) -> float:
        return self._current.timestamp()

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("cannot move a simulated clock backwards")
        self._current += timedelta(seconds=seconds)


def utc_now() -> datetime:
    return datetime.now(UTC)


__all__ = ["Clock", "SimulatedClock", "SystemClock", "utc_now"]
