"""Reporters that log spans or fan out to other reporters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tracegate.metrics import REPORTER_FAILURES, Metrics
from tracegate.reporters.base import Reporter

if TYPE_CHECKING:
    from tracegate.tracing.span import Span

logger = logging.getLogger(__name__)


class LoggingReporter(Reporter):
    """Logs a one-line summary of every span using the standard logging module."""

    def __init__(self, span_logger: logging.Logger | None = None) -> None:
        self.logger = span_logger or logging.getLogger("tracegate.spans")

    def report(self, span: Span) -> None:
        data = span.to_dict()
        self.logger.info(
            "Reporting span %s:%s:%s:%x %s duration=%dus tags=%s",
            data["trace_id"],
            data["span_id"],
            data["parent_id"],
            data["flags"],
            span.operation_name,
            span.duration_micros,
            data["tags"],
        )


class CompositeReporter(Reporter):
    """Reports each span to every delegate; one failing delegate does not stop the rest."""

    def __init__(self, *reporters: Reporter, metrics: Metrics | None = None) -> None:
        self.reporters = list(reporters)
        self.metrics = metrics or Metrics()

    def report(self, span: Span) -> None:
        for reporter in self.reporters:
            try:
                reporter.report(span)
            except Exception as e:
                self.metrics.increment(REPORTER_FAILURES)
                logger.warning("Reporter %r failed for %r: %s", reporter, span, e)

    def flush(self, timeout: float | None = None) -> None:
        for reporter in self.reporters:
            reporter.flush(timeout)

    def close(self) -> None:
        for reporter in self.reporters:
            reporter.close()
