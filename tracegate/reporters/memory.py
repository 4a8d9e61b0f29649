"""In-memory reporter, mainly for tests."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from tracegate.reporters.base import Reporter

if TYPE_CHECKING:
    from tracegate.tracing.span import Span


class InMemoryReporter(Reporter):
    """Keeps reported spans in a list, in the order they were finished."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._spans: list[Span] = []

    def report(self, span: Span) -> None:
        with self._lock:
            self._spans.append(span)

    def get_spans(self) -> list[Span]:
        with self._lock:
            return list(self._spans)

    def clear(self) -> None:
        with self._lock:
            self._spans = []
