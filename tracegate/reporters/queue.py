"""Bounded queue reporter with a background drain thread."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import TYPE_CHECKING, Deque

from tracegate.errors import ConfigError, ReporterError
from tracegate.metrics import REPORTER_FAILURES, SPANS_DROPPED, Metrics
from tracegate.reporters.base import Reporter

if TYPE_CHECKING:
    from tracegate.tracing.span import Span

logger = logging.getLogger(__name__)


class QueueReporter(Reporter):
    """
    Decouples span reporting from the request path.

    Any number of threads call ``report``; a single worker thread drains the
    queue into ``delegate``. ``report`` never blocks on the delegate: when
    the queue is full the oldest queued span is dropped and counted under
    ``spans_dropped``.
    """

    def __init__(
        self,
        delegate: Reporter,
        max_queue_size: int = 1000,
        flush_interval: float = 1.0,
        metrics: Metrics | None = None,
    ) -> None:
        if max_queue_size < 1:
            raise ConfigError("max_queue_size must be at least 1", details={"value": max_queue_size})
        if flush_interval <= 0:
            raise ConfigError("flush_interval must be positive", details={"value": flush_interval})

        self.delegate = delegate
        self.max_queue_size = max_queue_size
        self.flush_interval = flush_interval
        self.metrics = metrics or Metrics()

        self._queue: Deque[Span] = deque()
        self._lock = threading.Lock()
        self._drain_lock = threading.Lock()
        self._event = threading.Event()
        self._closed = False
        self._worker = threading.Thread(
            target=self._worker_loop, name="tracegate-reporter", daemon=True
        )
        self._worker.start()

    @property
    def queue_size(self) -> int:
        with self._lock:
            return len(self._queue)

    def report(self, span: Span) -> None:
        if self._closed:
            raise ReporterError("Reporter is closed")

        dropped = False
        with self._lock:
            if len(self._queue) >= self.max_queue_size:
                self._queue.popleft()
                dropped = True
            self._queue.append(span)

        if dropped:
            self.metrics.increment(SPANS_DROPPED)
            logger.debug("Span queue full (%d), dropped oldest span", self.max_queue_size)
        self._event.set()

    def flush(self, timeout: float | None = None) -> None:
        """Drain the queue in the calling thread, then flush the delegate."""
        self._drain()
        self.delegate.flush(timeout)

    def close(self) -> None:
        """Stop the worker, deliver what is left and close the delegate."""
        if self._closed:
            return
        self._closed = True
        self._event.set()
        self._worker.join(timeout=self.flush_interval * 2)
        self._drain()
        self.delegate.close()

    # Internal
    def _worker_loop(self) -> None:
        while not self._closed:
            self._event.wait(timeout=self.flush_interval)
            self._event.clear()
            self._drain()

    def _drain(self) -> None:
        # one consumer at a time keeps delivery order equal to queue order
        with self._drain_lock:
            while True:
                with self._lock:
                    if not self._queue:
                        return
                    span = self._queue.popleft()
                try:
                    self.delegate.report(span)
                except Exception as e:
                    self.metrics.increment(REPORTER_FAILURES)
                    logger.warning("Delegate reporter failed for %r: %s", span, e)
