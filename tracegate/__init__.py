"""
tracegate

Server-side trace propagation for Python web services: decodes inbound
``uber-trace-id`` headers, wraps each request in a server span and keeps it
active while the handler runs.

Usage:
    import tracegate
    from tracegate.frameworks.flask import init_app

    tracer = tracegate.init(service_name="orders")
    init_app(app)

    # Inside a handler, nested spans pick up the server span as parent
    with tracer.start_active_span("load-order") as scope:
        scope.span.set_tag("order.id", "123")
"""

from tracegate.client import close, flush, get_client, init, init_from_env
from tracegate.errors import (
    ConfigError,
    MalformedHeaderError,
    ReporterError,
    TracegateError,
    UnsupportedFormatError,
)
from tracegate.interceptor import RequestContext, ServerInterceptor
from tracegate.reporters import InMemoryReporter, QueueReporter, Reporter
from tracegate.tracing import (
    HeaderCarrier,
    HeaderCodec,
    Scope,
    Span,
    SpanContext,
    Tracer,
    get_active_span,
    get_tracer,
    traced,
)
from tracegate.types import Format, ReferenceType, SpanKind, SpanState, Tags, TracerOptions

__version__ = "0.1.0"
__all__ = [
    # Core
    "init",
    "init_from_env",
    "flush",
    "close",
    "get_client",
    # Tracing
    "Tracer",
    "Span",
    "SpanContext",
    "Scope",
    "HeaderCarrier",
    "HeaderCodec",
    "get_tracer",
    "get_active_span",
    "traced",
    # Interceptor
    "RequestContext",
    "ServerInterceptor",
    # Reporters
    "Reporter",
    "InMemoryReporter",
    "QueueReporter",
    # Types
    "Format",
    "ReferenceType",
    "SpanKind",
    "SpanState",
    "Tags",
    "TracerOptions",
    # Errors
    "TracegateError",
    "MalformedHeaderError",
    "UnsupportedFormatError",
    "ConfigError",
    "ReporterError",
]
