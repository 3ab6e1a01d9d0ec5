"""Thread-safe operational counters."""

import threading


class Metrics:
    """Named counters for the tailing pipeline.

    Counters are bumped from the event loop thread and read from the signal
    handler / shutdown path, hence the lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}

    def increment(self, name: str, amount: int = 1):
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + amount

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def snapshot(self) -> dict[str, int]:
        """Return a copy of all counters."""
        with self._lock:
            return dict(self._counters)
