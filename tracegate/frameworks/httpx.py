"""httpx client integration for tracegate.

Wraps an httpx transport so that every outgoing request runs in a client
span, child of the caller's active span, whose context is injected into the
request headers for the downstream service to extract.
"""

from __future__ import annotations

import httpx

from tracegate.tracing.span import Span
from tracegate.tracing.tracer import Tracer, get_tracer
from tracegate.types import Format, SpanKind, Tags


def _start_client_span(tracer: Tracer, request: httpx.Request) -> Span:
    method = request.method.upper()
    span = (
        tracer.build_span(method)
        .with_tag(Tags.SPAN_KIND, SpanKind.CLIENT.value)
        .with_tag(Tags.HTTP_METHOD, method)
        .with_tag(Tags.HTTP_URL, str(request.url))
        .start()
    )
    tracer.inject(span.context, Format.HTTP_HEADERS, request.headers)
    return span


def _finish_client_span(span: Span, response: httpx.Response) -> None:
    span.set_tag(Tags.HTTP_STATUS_CODE, response.status_code)
    if response.status_code >= 500:
        span.set_tag(Tags.ERROR, True)
    span.finish()


class TracingTransport(httpx.BaseTransport):
    """
    Synchronous httpx transport that traces each request.

    Usage:
        client = httpx.Client(transport=TracingTransport(httpx.HTTPTransport()))
    """

    def __init__(self, transport: httpx.BaseTransport, tracer: Tracer | None = None) -> None:
        self.transport = transport
        self.tracer = tracer

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        tracer = self.tracer or get_tracer()
        if not tracer:
            return self.transport.handle_request(request)

        span = _start_client_span(tracer, request)
        try:
            response = self.transport.handle_request(request)
        except Exception as error:
            span.record_exception(error)
            span.finish()
            raise
        _finish_client_span(span, response)
        return response

    def close(self) -> None:
        self.transport.close()


class AsyncTracingTransport(httpx.AsyncBaseTransport):
    """Asynchronous counterpart of ``TracingTransport``."""

    def __init__(self, transport: httpx.AsyncBaseTransport, tracer: Tracer | None = None) -> None:
        self.transport = transport
        self.tracer = tracer

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        tracer = self.tracer or get_tracer()
        if not tracer:
            return await self.transport.handle_async_request(request)

        span = _start_client_span(tracer, request)
        try:
            response = await self.transport.handle_async_request(request)
        except Exception as error:
            span.record_exception(error)
            span.finish()
            raise
        _finish_client_span(span, response)
        return response

    async def aclose(self) -> None:
        await self.transport.aclose()
