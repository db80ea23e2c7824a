"""
Clocks for the proposal registry.

The registry takes any zero-argument callable returning seconds. Production
code passes `time.time`; simulations and tests pass a ManualClock and move
it forward explicitly.
"""

import threading
import time
from typing import Optional


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[float] = None):
        self._now = int(time.time()) if start is None else start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, timestamp: float) -> None:
        with self._lock:
            if timestamp < self._now:
                raise ValueError("Clock cannot move backwards")
            self._now = timestamp

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"
