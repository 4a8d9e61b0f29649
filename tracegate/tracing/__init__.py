"""Tracing module for tracegate."""

from tracegate.tracing.codec import (
    BAGGAGE_HEADER_PREFIX,
    PEER_SERVICE_HEADER,
    TRACE_ID_HEADER,
    HeaderCarrier,
    HeaderCodec,
)
from tracegate.tracing.context import (
    FLAG_DEBUG,
    FLAG_NONE,
    FLAG_SAMPLED,
    SpanContext,
    generate_span_id,
    generate_trace_id,
)
from tracegate.tracing.decorators import traced
from tracegate.tracing.scope import ActiveScopeRegistry, Scope
from tracegate.tracing.span import Span
from tracegate.tracing.tracer import SpanBuilder, Tracer, get_active_span, get_tracer, set_tracer

__all__ = [
    # Codec
    "TRACE_ID_HEADER",
    "BAGGAGE_HEADER_PREFIX",
    "PEER_SERVICE_HEADER",
    "HeaderCarrier",
    "HeaderCodec",
    # Context
    "FLAG_NONE",
    "FLAG_SAMPLED",
    "FLAG_DEBUG",
    "SpanContext",
    "generate_span_id",
    "generate_trace_id",
    # Scope
    "ActiveScopeRegistry",
    "Scope",
    # Span
    "Span",
    # Tracer
    "SpanBuilder",
    "Tracer",
    "get_tracer",
    "set_tracer",
    "get_active_span",
    # Decorators
    "traced",
]
