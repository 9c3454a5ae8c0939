"""
Clock - Source of "current time" for the engine.

Timestamps are integer seconds, like block timestamps. The engine reads the
clock once per operation so every check in that operation sees one instant.
"""

import threading
import time
from typing import Optional, Protocol


class Clock(Protocol):
    """Anything with a now() returning integer seconds."""

    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Simulated clock for tests and demos.

    Time only moves when advance() or set() is called, the way a local
    test chain only moves forward when told to.
    """

    def __init__(self, start: Optional[int] = None):
        self._now = int(time.time()) if start is None else start
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        """Move time forward by `seconds`. Returns the new time."""
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, timestamp: int) -> None:
        with self._lock:
            if timestamp < self._now:
                raise ValueError("Clock cannot move backwards")
            self._now = timestamp
