"""Span implementation for tracegate."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Any

from tracegate.tracing.context import SpanContext, format_id
from tracegate.types import LogRecord, SpanReference, SpanState, TagValue, Tags

if TYPE_CHECKING:
    from tracegate.tracing.tracer import Tracer

logger = logging.getLogger(__name__)


def now_micros() -> int:
    """Wall clock time in microseconds."""
    return time.time_ns() // 1000


class Span:
    """
    A timed, named, tagged unit of work.

    Mutable until ``finish()``; afterwards tag, log and baggage updates are
    ignored. ``finish()`` hands the span to the tracer exactly once.
    """

    def __init__(
        self,
        tracer: Tracer,
        operation_name: str,
        context: SpanContext,
        start_micros: int | None = None,
        tags: dict[str, TagValue] | None = None,
        references: list[SpanReference] | None = None,
    ) -> None:
        self._tracer = tracer
        self._operation_name = operation_name
        self._context = context
        self._start_micros = start_micros if start_micros is not None else now_micros()
        self._finish_micros: int | None = None
        self._tags: dict[str, TagValue] = dict(tags or {})
        self._references: list[SpanReference] = list(references or [])
        self._logs: list[LogRecord] = []
        self._state = SpanState.CREATED
        self._lock = threading.Lock()

    @property
    def tracer(self) -> Tracer:
        return self._tracer

    @property
    def operation_name(self) -> str:
        return self._operation_name

    @property
    def context(self) -> SpanContext:
        return self._context

    @property
    def trace_id(self) -> int:
        return self._context.trace_id

    @property
    def span_id(self) -> int:
        return self._context.span_id

    @property
    def parent_id(self) -> int:
        return self._context.parent_id

    @property
    def start_micros(self) -> int:
        return self._start_micros

    @property
    def finish_micros(self) -> int | None:
        return self._finish_micros

    @property
    def duration_micros(self) -> int:
        if self._finish_micros is None:
            return 0
        return self._finish_micros - self._start_micros

    @property
    def tags(self) -> dict[str, TagValue]:
        return dict(self._tags)

    @property
    def references(self) -> list[SpanReference]:
        return list(self._references)

    @property
    def logs(self) -> list[LogRecord]:
        return list(self._logs)

    @property
    def state(self) -> SpanState:
        return self._state

    def is_finished(self) -> bool:
        return self._finish_micros is not None

    def set_operation_name(self, name: str) -> Span:
        if not self.is_finished():
            self._operation_name = name
        return self

    def set_tag(self, key: str, value: TagValue) -> Span:
        """Set a single tag. Ignored after finish."""
        if not self.is_finished():
            self._tags[key] = value
        return self

    def log_kv(self, fields: dict[str, TagValue], timestamp_micros: int | None = None) -> Span:
        """Append a structured log entry. Ignored after finish."""
        if not self.is_finished():
            self._logs.append(
                LogRecord(
                    timestamp_micros=timestamp_micros if timestamp_micros is not None else now_micros(),
                    fields=dict(fields),
                )
            )
        return self

    def set_baggage_item(self, key: str, value: str) -> Span:
        """Add baggage; it propagates to children created after this call."""
        if not self.is_finished():
            self._context = self._context.with_baggage_item(key, value)
        return self

    def get_baggage_item(self, key: str) -> str | None:
        return self._context.baggage.get(key)

    def record_exception(self, error: BaseException) -> Span:
        """Tag the span as failed and log the exception message."""
        self.set_tag(Tags.ERROR, True)
        self.set_tag(Tags.ERROR_KIND, type(error).__name__)
        self.log_kv({"event": "error", "message": str(error)})
        return self

    def finish(self, finish_micros: int | None = None) -> None:
        """Finish the span and hand it to the tracer. A second call is ignored."""
        with self._lock:
            if self._finish_micros is not None:
                logger.warning("Span %s finished more than once", self)
                return
            self._finish_micros = finish_micros if finish_micros is not None else now_micros()
            self._state = SpanState.FINISHED
        self._tracer.on_span_finish(self)

    def _set_state(self, state: SpanState) -> None:
        if self._state is not SpanState.FINISHED:
            self._state = state

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging or serialization."""
        return {
            "trace_id": format_id(self.trace_id),
            "span_id": format_id(self.span_id),
            "parent_id": format_id(self.parent_id),
            "flags": self._context.flags,
            "operation_name": self._operation_name,
            "start_micros": self._start_micros,
            "duration_micros": self.duration_micros,
            "tags": dict(self._tags),
            "references": [r.to_dict() for r in self._references],
            "logs": [entry.to_dict() for entry in self._logs],
            "baggage": dict(self._context.baggage),
        }

    def __enter__(self) -> Span:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_val is not None:
            self.record_exception(exc_val)
        self.finish()

    def __repr__(self) -> str:
        return f"Span({self._operation_name!r}, {self._context})"
