"""Counters for faults that tracegate recovers from instead of raising."""

from __future__ import annotations

import threading

MALFORMED_HEADERS = "malformed_headers"
SCOPE_MISUSE = "scope_misuse"
SPANS_DROPPED = "spans_dropped"
REPORTER_FAILURES = "reporter_failures"
SPANS_STARTED = "spans_started"
SPANS_FINISHED = "spans_finished"


class Metrics:
    """
    Thread-safe named counters.

    One instance is shared by a tracer, its scope registry and its
    reporters so that every recovered fault lands in one place.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}

    def increment(self, name: str, value: int = 1) -> None:
        """Add ``value`` to the counter ``name``."""
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def get(self, name: str) -> int:
        """Current value of ``name`` (0 when never incremented)."""
        with self._lock:
            return self._counters.get(name, 0)

    def snapshot(self) -> dict[str, int]:
        """Copy of all counters."""
        with self._lock:
            return dict(self._counters)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
