"""
fusionswap/core/time.py

THE ONLY TIME SOURCES IN FUSIONSWAP.

Two notions of time live here:

    Protocol time   - integer seconds from an injected Clock.
                      Every phase and price computation takes an explicit
                      `now`; the settlement engine reads clock.now() exactly
                      once per operation and threads it down.

    Journal time    - wall-clock wire format YYYY-MM-DDTHH:MM:SS.mmmZ
                      (milliseconds, explicit Z, no +00:00, no microseconds)
                      stamped on journal envelopes by journal_timestamp().

Clocks never rewind. SystemClock clamps to the last value it returned;
ManualClock raises ClockRewindError.
"""

import threading
import time
from datetime import datetime, timezone
from typing import Optional, Protocol, runtime_checkable

from fusionswap.core.exceptions import ClockRewindError


def journal_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"


@runtime_checkable
class Clock(Protocol):
    """Monotonic non-decreasing source of protocol time (integer seconds)."""

    def now(self) -> int:
        ...


class SystemClock:
    """Wall clock in whole seconds. Never returns a smaller value than before."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: int = 0

    def now(self) -> int:
        with self._lock:
            current = int(time.time())
            if current > self._last:
                self._last = current
            return self._last


class ManualClock:
    """
    Deterministic clock for tests and simulations.

        clock = ManualClock(1_000)
        clock.advance(300)
        clock.set(2_000)
    """

    def __init__(self, start: int = 0) -> None:
        if not isinstance(start, int) or start < 0:
            raise ValueError(f"start must be a non-negative int, got {start!r}")
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, value: int) -> int:
        if value < self._now:
            raise ClockRewindError(
                "Clock cannot move backwards",
                {"current": self._now, "requested": value},
            )
        self._now = value
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ClockRewindError(
                "Clock cannot move backwards",
                {"current": self._now, "delta": seconds},
            )
        self._now += seconds
        return self._now

    def __repr__(self) -> str:
        return f"ManualClock(now={self._now})"


def resolve_clock(clock: Optional[Clock]) -> Clock:
    """Return `clock` or a fresh SystemClock when none is supplied."""
    return clock if clock is not None else SystemClock()
