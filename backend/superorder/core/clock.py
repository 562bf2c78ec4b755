"""
Time sources. Every engine reads "now" through a clock so timeouts stay plain
timestamp comparisons and tests can move time explicitly.
"""
import time


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Clock that only moves when told to. Used by tests and the demo script.
    """
    def __init__(self, start: int = 1_700_000_000):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError("Clock cannot move backwards")
        self._now = timestamp
