"""
pushns.runtime.clock — time sources for the executor.

Timestamps are integer Unix seconds. The executor samples its clock once at
the start of every outermost transaction, so all checks inside one
transaction see the same ``now``.

- SystemClock: wall time.
- ManualClock: explicit, monotonically non-decreasing time for tests, the
  demo and replay. Moving it backwards is a programming error.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int:
        """Current time in integer Unix seconds."""


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    A clock that only moves when told to.

        clock = ManualClock(1_700_000_000)
        clock.advance(70)
        clock.now()  # 1_700_000_070
    """

    def __init__(self, start: int = 1_700_000_000) -> None:
        if start < 0:
            raise ValueError("start must be >= 0")
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(f"clock cannot move backwards ({timestamp} < {self._now})")
        self._now = int(timestamp)
        return self._now


__all__ = ["Clock", "SystemClock", "ManualClock"]
