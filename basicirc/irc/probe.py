"""Probe (PING) accounting."""

from __future__ import annotations

import threading


class ProbeCounter:
    """Monotonic count of answered server probes.

    One instance belongs to one session; pass a shared instance explicitly to
    aggregate several sessions. Increments are serialized with a lock so PONG
    tasks may run concurrently, even from worker threads.
    """

    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def increment(self) -> int:
        """Add one and return the new value."""
        with self._lock:
            self._value += 1
            return self._value
