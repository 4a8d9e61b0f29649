"""Server-side request interceptor.

Frameworks call two hooks around every request: ``on_request`` before any
handler code runs and ``on_response`` once the status is known, even when
the handler raised. Between the two the server span is the active span of
the task serving the request, so spans opened by the handler become its
children without explicit plumbing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from tracegate.tracing.codec import Carrier
from tracegate.tracing.scope import Scope
from tracegate.tracing.tracer import Tracer
from tracegate.types import Format, SpanKind, Tags

logger = logging.getLogger(__name__)

SCOPE_PROPERTY = "tracegate.scope"
CANCELLED_STATUS = 499


@dataclass
class RequestContext:
    """What the interceptor needs from a request, plus a per-request stash."""

    method: str
    headers: Carrier
    url: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)


class ServerInterceptor:
    """
    Wraps each inbound request in a server span.

    Tracing faults inside the hooks are logged and swallowed so that they
    never change the response the framework produces.
    """

    def __init__(self, tracer: Tracer, fmt: Format = Format.HTTP_HEADERS) -> None:
        self.tracer = tracer
        self.format = fmt

    def on_request(self, request: RequestContext) -> Scope | None:
        """Extract the inbound context, start the server span and activate it."""
        try:
            return self._start_server_span(request)
        except Exception as e:
            logger.warning("Failed to start server span for %s request: %s", request.method, e)
            return None

    def on_response(
        self,
        request: RequestContext,
        status: int,
        error: BaseException | None = None,
    ) -> None:
        """Tag the outcome, close the scope and finish the span."""
        scope: Scope | None = request.properties.pop(SCOPE_PROPERTY, None)
        if scope is None:
            logger.debug("No server span stashed for %s request", request.method)
            return

        span = scope.span
        try:
            span.set_tag(Tags.HTTP_STATUS_CODE, status)
            if error is not None:
                span.record_exception(error)
            elif status >= 500:
                span.set_tag(Tags.ERROR, True)
        except Exception as e:
            logger.warning("Failed to tag server span %r: %s", span, e)
        finally:
            try:
                scope.close()
            finally:
                span.finish()

    def on_cancel(self, request: RequestContext) -> None:
        """Finish the span of a cancelled request with status 499."""
        scope: Scope | None = request.properties.get(SCOPE_PROPERTY)
        if scope is not None:
            scope.span.set_tag(Tags.ERROR, True)
        self.on_response(request, CANCELLED_STATUS)

    def _start_server_span(self, request: RequestContext) -> Scope:
        codec = self.tracer.codec(self.format)
        parent = codec.extract(request.headers)
        method = request.method.upper()

        builder = (
            self.tracer.build_span(method)
            .ignore_active_span()
            .as_child_of(parent)
            .with_tag(Tags.SPAN_KIND, SpanKind.SERVER.value)
            .with_tag(Tags.HTTP_METHOD, method)
        )
        if request.url:
            builder.with_tag(Tags.HTTP_URL, request.url)
        for key, value in codec.extract_tags(request.headers).items():
            builder.with_tag(key, value)

        span = builder.start()
        scope = self.tracer.scope_manager.activate(span, finish_on_close=False)
        request.properties[SCOPE_PROPERTY] = scope

        logger.debug("Started server span %r (parent %s)", span, parent)
        return scope
