"""Tracer for tracegate."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from tracegate.errors import UnsupportedFormatError
from tracegate.metrics import REPORTER_FAILURES, SPANS_FINISHED, SPANS_STARTED, Metrics
from tracegate.tracing.codec import Carrier, HeaderCodec
from tracegate.tracing.context import FLAG_NONE, FLAG_SAMPLED, SpanContext, generate_span_id
from tracegate.tracing.scope import ActiveScopeRegistry, Scope
from tracegate.tracing.span import Span
from tracegate.types import Format, ReferenceType, SpanReference, TagValue

if TYPE_CHECKING:
    from tracegate.reporters.base import Reporter

logger = logging.getLogger(__name__)

# Global tracer instance
_tracer: Tracer | None = None


class SpanBuilder:
    """
    Collects references, tags and a start time before creating a span.

    Without an explicit parent the span becomes a child of the tracer's
    active span, unless ``ignore_active_span()`` was called.
    """

    def __init__(self, tracer: Tracer, operation_name: str) -> None:
        self._tracer = tracer
        self._operation_name = operation_name
        self._references: list[SpanReference] = []
        self._tags: dict[str, TagValue] = {}
        self._start_micros: int | None = None
        self._ignore_active = False

    def as_child_of(self, parent: SpanContext | Span | None) -> SpanBuilder:
        if parent is None:
            return self
        context = parent.context if isinstance(parent, Span) else parent
        return self.add_reference(ReferenceType.CHILD_OF, context)

    def add_reference(self, kind: ReferenceType, context: SpanContext) -> SpanBuilder:
        self._references.append(SpanReference(kind=kind, context=context))
        return self

    def with_tag(self, key: str, value: TagValue) -> SpanBuilder:
        self._tags[key] = value
        return self

    def with_start_timestamp(self, micros: int) -> SpanBuilder:
        self._start_micros = micros
        return self

    def ignore_active_span(self) -> SpanBuilder:
        self._ignore_active = True
        return self

    def start(self) -> Span:
        """Create and start the span."""
        if not self._references and not self._ignore_active:
            active = self._tracer.active_span
            if active is not None:
                self.as_child_of(active)

        parent = self._parent_context()
        context = self._tracer._new_context(parent)

        span = Span(
            tracer=self._tracer,
            operation_name=self._operation_name,
            context=context,
            start_micros=self._start_micros,
            tags={**self._tracer.tags, **self._tags},
            references=self._references,
        )
        self._tracer.metrics.increment(SPANS_STARTED)
        return span

    def start_active(self, finish_on_close: bool = True) -> Scope:
        """Start the span and make it the active span of the current task."""
        return self._tracer.scope_manager.activate(self.start(), finish_on_close=finish_on_close)

    def _parent_context(self) -> SpanContext | None:
        for reference in self._references:
            if reference.kind is ReferenceType.CHILD_OF:
                return reference.context
        return self._references[0].context if self._references else None


class Tracer:
    """
    Creates spans, propagates their contexts and hands finished spans to a reporter.

    Safe to share across threads and tasks; the only per-task state lives in
    the scope registry.
    """

    def __init__(
        self,
        service_name: str,
        reporter: Reporter,
        sampled: bool = True,
        metrics: Metrics | None = None,
        scope_manager: ActiveScopeRegistry | None = None,
        tags: dict[str, TagValue] | None = None,
    ) -> None:
        self.service_name = service_name
        self.reporter = reporter
        self.sampled = sampled
        self.metrics = metrics or Metrics()
        self.tags: dict[str, TagValue] = dict(tags or {})
        self._scope_manager = scope_manager or ActiveScopeRegistry(self.metrics)
        self._codecs: dict[Format, HeaderCodec] = {
            Format.TEXT_MAP: HeaderCodec(url_encoding=False, metrics=self.metrics),
            Format.HTTP_HEADERS: HeaderCodec(url_encoding=True, metrics=self.metrics),
        }

    @property
    def scope_manager(self) -> ActiveScopeRegistry:
        return self._scope_manager

    @property
    def active_span(self) -> Span | None:
        return self._scope_manager.active()

    def build_span(self, operation_name: str) -> SpanBuilder:
        return SpanBuilder(self, operation_name)

    def start_span(
        self,
        operation_name: str,
        child_of: SpanContext | Span | None = None,
        tags: dict[str, TagValue] | None = None,
        ignore_active_span: bool = False,
    ) -> Span:
        """Shortcut for ``build_span(...)...start()``."""
        builder = self.build_span(operation_name).as_child_of(child_of)
        for key, value in (tags or {}).items():
            builder.with_tag(key, value)
        if ignore_active_span:
            builder.ignore_active_span()
        return builder.start()

    def start_active_span(
        self,
        operation_name: str,
        child_of: SpanContext | Span | None = None,
        tags: dict[str, TagValue] | None = None,
        finish_on_close: bool = True,
    ) -> Scope:
        span = self.start_span(operation_name, child_of=child_of, tags=tags)
        return self._scope_manager.activate(span, finish_on_close=finish_on_close)

    def codec(self, fmt: Format) -> HeaderCodec:
        try:
            return self._codecs[fmt]
        except KeyError:
            raise UnsupportedFormatError(f"No codec registered for format {fmt!r}") from None

    def register_codec(self, fmt: Format, codec: HeaderCodec) -> None:
        self._codecs[fmt] = codec

    def inject(self, context: SpanContext | Span, fmt: Format, carrier: Any) -> None:
        """Write ``context`` into ``carrier`` using the codec for ``fmt``."""
        if isinstance(context, Span):
            context = context.context
        self.codec(fmt).inject(context, carrier)

    def extract(self, fmt: Format, carrier: Carrier) -> SpanContext | None:
        """Read a span context from ``carrier``; None when absent or malformed."""
        return self.codec(fmt).extract(carrier)

    def on_span_finish(self, span: Span) -> None:
        """Called by ``Span.finish()``."""
        self.metrics.increment(SPANS_FINISHED)
        self.report_span(span)

    def report_span(self, span: Span) -> None:
        """Hand ``span`` to the reporter; failures are counted, never raised."""
        try:
            self.reporter.report(span)
        except Exception as e:
            self.metrics.increment(REPORTER_FAILURES)
            logger.warning("Failed to report span %r: %s", span, e)

    def flush(self, timeout: float | None = None) -> None:
        self.reporter.flush(timeout)

    def close(self) -> None:
        """Close the reporter."""
        self.reporter.close()

    def _new_context(self, parent: SpanContext | None) -> SpanContext:
        span_id = generate_span_id()
        if parent is None:
            return SpanContext(
                trace_id=span_id,
                span_id=span_id,
                parent_id=0,
                flags=FLAG_SAMPLED if self.sampled else FLAG_NONE,
            )
        return SpanContext(
            trace_id=parent.trace_id,
            span_id=span_id,
            parent_id=parent.span_id,
            flags=parent.flags,
            baggage=parent.baggage,
        )


def set_tracer(tracer: Tracer | None) -> None:
    """Set the global tracer instance."""
    global _tracer
    _tracer = tracer


def get_tracer() -> Tracer | None:
    """Get the global tracer instance."""
    return _tracer


def get_active_span() -> Span | None:
    """Get the active span of the global tracer."""
    tracer = get_tracer()
    if not tracer:
        return None
    return tracer.active_span
