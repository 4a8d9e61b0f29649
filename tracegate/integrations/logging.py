"""Logging integration for tracegate."""

from __future__ import annotations

import logging
from typing import Any

from tracegate.tracing.context import format_id
from tracegate.tracing.span import Span
from tracegate.tracing.tracer import Tracer, get_active_span
from tracegate.types import Tags


def _active_span(tracer: Tracer | None) -> Span | None:
    if tracer is not None:
        return tracer.active_span
    return get_active_span()


class SpanLoggingHandler(logging.Handler):
    """
    Logging handler that records log lines on the active span.

    Each record becomes a span log entry with ``event``, ``message``,
    ``logger`` and ``level`` fields. Records at ERROR or above also mark the
    span with ``error = true``. Records emitted with no active span are
    ignored.

    Usage:
        import logging
        from tracegate.integrations.logging import SpanLoggingHandler

        logging.getLogger().addHandler(SpanLoggingHandler())
    """

    def __init__(self, level: int = logging.DEBUG, tracer: Tracer | None = None) -> None:
        super().__init__(level=level)
        self.tracer = tracer

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a record."""
        try:
            self._handle_record(record)
        except Exception:
            self.handleError(record)

    def _handle_record(self, record: logging.LogRecord) -> None:
        span = _active_span(self.tracer)
        if span is None:
            return

        fields: dict[str, Any] = {
            "event": "log",
            "message": self.format(record),
            "logger": record.name,
            "level": record.levelname,
        }
        if record.exc_info and record.exc_info[1]:
            fields["error.kind"] = type(record.exc_info[1]).__name__

        span.log_kv(fields, timestamp_micros=int(record.created * 1_000_000))

        if record.levelno >= logging.ERROR:
            span.set_tag(Tags.ERROR, True)


class TraceContextFilter(logging.Filter):
    """
    Stamps ``trace_id`` and ``span_id`` (hex, empty when no span is active)
    onto every record so formatters can reference them.
    """

    def __init__(self, name: str = "", tracer: Tracer | None = None) -> None:
        super().__init__(name)
        self.tracer = tracer

    def filter(self, record: logging.LogRecord) -> bool:
        span = _active_span(self.tracer)
        record.trace_id = format_id(span.trace_id) if span else ""
        record.span_id = format_id(span.span_id) if span else ""
        return True
