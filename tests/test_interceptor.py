"""Unit tests for the server interceptor hooks."""

import logging

import pytest

from tracegate.frameworks import is_excluded_path
from tracegate.interceptor import CANCELLED_STATUS, SCOPE_PROPERTY, RequestContext, ServerInterceptor
from tracegate.metrics import MALFORMED_HEADERS
from tracegate.reporters import InMemoryReporter
from tracegate.tracing.codec import TRACE_ID_HEADER, HeaderCarrier
from tracegate.tracing.context import SpanContext
from tracegate.tracing.tracer import Tracer
from tracegate.types import Format, SpanState, Tags


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tracer():
    return Tracer(service_name="svc-test", reporter=InMemoryReporter())


@pytest.fixture
def interceptor(tracer):
    return ServerInterceptor(tracer)


def _request(headers=None, method="GET", url="http://svc/monsoon") -> RequestContext:
    return RequestContext(method=method, headers=headers or {}, url=url)


# ===================================================================
# on_request
# ===================================================================

class TestOnRequest:
    """Test server span creation from inbound headers."""

    def test_root_span_without_headers(self, tracer, interceptor):
        """A request with no trace header should start a new trace."""
        request = _request()
        scope = interceptor.on_request(request)

        span = scope.span
        assert span.operation_name == "GET"
        assert span.parent_id == 0
        assert span.trace_id != 0
        assert span.tags[Tags.SPAN_KIND] == "server"
        assert span.tags[Tags.HTTP_METHOD] == "GET"
        assert span.tags[Tags.HTTP_URL] == "http://svc/monsoon"
        assert request.properties[SCOPE_PROPERTY] is scope
        assert tracer.active_span is span

        interceptor.on_response(request, 200)

    def test_method_is_uppercased(self, interceptor):
        """The operation name should be the upper-case HTTP method."""
        request = _request(method="post")
        scope = interceptor.on_request(request)
        assert scope.span.operation_name == "POST"
        interceptor.on_response(request, 201)

    def test_child_of_inbound_context(self, interceptor):
        """An inbound 4:3:2:1 header should make the server span a child of span 3."""
        request = _request({TRACE_ID_HEADER: "4:3:2:1"})
        span = interceptor.on_request(request).span
        assert span.trace_id == 4
        assert span.parent_id == 3
        assert span.context.is_sampled
        interceptor.on_response(request, 200)

    def test_unsampled_inbound_context_is_reported(self, tracer, interceptor):
        """A flags=0 inbound context should still yield one reported server span."""
        request = _request({TRACE_ID_HEADER: "4:3:2:0"})
        span = interceptor.on_request(request).span
        interceptor.on_response(request, 200)

        assert not span.context.is_sampled
        assert span.trace_id == 4
        assert tracer.reporter.get_spans() == [span]

    def test_peer_service_tag(self, interceptor):
        """x-uber-source should become the peer.service tag."""
        request = _request({"x-uber-source": "origin"})
        span = interceptor.on_request(request).span
        assert span.tags[Tags.PEER_SERVICE] == "origin"
        interceptor.on_response(request, 200)

    def test_inbound_baggage(self, interceptor):
        """Baggage headers should be visible on the server span."""
        headers = HeaderCarrier([(TRACE_ID_HEADER, "4:3:2:1"), ("uberctx-user", "alice")])
        request = _request(headers)
        span = interceptor.on_request(request).span
        assert span.get_baggage_item("user") == "alice"
        interceptor.on_response(request, 200)

    def test_malformed_header_starts_new_trace(self, tracer, interceptor):
        """A malformed header should be counted and yield a fresh root span."""
        request = _request({TRACE_ID_HEADER: "not:hex"})
        span = interceptor.on_request(request).span
        assert span.parent_id == 0
        assert span.trace_id == span.span_id
        assert tracer.metrics.get(MALFORMED_HEADERS) == 1
        interceptor.on_response(request, 200)

    def test_ignores_span_active_in_calling_task(self, tracer, interceptor):
        """The server span's parent comes only from the inbound headers."""
        with tracer.start_active_span("unrelated") as outer:
            request = _request()
            span = interceptor.on_request(request).span
            assert span.parent_id == 0
            assert span.trace_id != outer.span.trace_id
            interceptor.on_response(request, 200)
            assert tracer.active_span is outer.span

    def test_text_map_format(self, tracer):
        """The interceptor should honour its configured format."""
        interceptor = ServerInterceptor(tracer, fmt=Format.TEXT_MAP)
        request = _request({TRACE_ID_HEADER: "4:3:2:1", "uberctx-note": "a%20b"})
        span = interceptor.on_request(request).span
        assert span.get_baggage_item("note") == "a%20b"
        interceptor.on_response(request, 200)

    def test_tracing_fault_is_swallowed(self, tracer, interceptor, caplog):
        """An unreadable carrier should be logged, not raised."""
        request = RequestContext(method="GET", headers=object())  # type: ignore[arg-type]
        with caplog.at_level(logging.WARNING, logger="tracegate"):
            assert interceptor.on_request(request) is None
        assert "Failed to start server span" in caplog.text
        assert tracer.active_span is None

        interceptor.on_response(request, 200)
        assert tracer.reporter.get_spans() == []


# ===================================================================
# on_response / on_cancel
# ===================================================================

class TestOnResponse:
    """Test how the server span is tagged, closed and finished."""

    def test_success(self, tracer, interceptor):
        """A 200 response should finish one span without error tags."""
        request = _request()
        span = interceptor.on_request(request).span
        interceptor.on_response(request, 200)

        assert tracer.reporter.get_spans() == [span]
        assert span.tags[Tags.HTTP_STATUS_CODE] == 200
        assert Tags.ERROR not in span.tags
        assert span.state is SpanState.FINISHED
        assert tracer.active_span is None
        assert SCOPE_PROPERTY not in request.properties

    def test_server_error_status(self, tracer, interceptor):
        """A 5xx status should mark the span as failed."""
        request = _request()
        span = interceptor.on_request(request).span
        interceptor.on_response(request, 503)
        assert span.tags[Tags.ERROR] is True
        assert span.tags[Tags.HTTP_STATUS_CODE] == 503

    def test_client_error_status_is_not_error(self, interceptor):
        """A 4xx status is not a server failure."""
        request = _request()
        span = interceptor.on_request(request).span
        interceptor.on_response(request, 404)
        assert Tags.ERROR not in span.tags

    def test_handler_exception(self, interceptor):
        """An exception should set error and error.kind."""
        request = _request()
        span = interceptor.on_request(request).span
        interceptor.on_response(request, 500, error=ZeroDivisionError("division by zero"))
        assert span.tags[Tags.ERROR] is True
        assert span.tags[Tags.ERROR_KIND] == "ZeroDivisionError"
        assert span.tags[Tags.HTTP_STATUS_CODE] == 500

    def test_nested_handler_span(self, tracer, interceptor):
        """Spans opened by the handler should be children of the server span."""
        request = _request({TRACE_ID_HEADER: "4:3:2:1"})
        server_span = interceptor.on_request(request).span
        tracer.build_span("nested-span").start_active().close()
        interceptor.on_response(request, 200)

        nested, reported_server = tracer.reporter.get_spans()
        assert reported_server is server_span
        assert nested.operation_name == "nested-span"
        assert nested.parent_id == server_span.span_id
        assert nested.trace_id == 4

    def test_response_without_request_is_ignored(self, tracer, interceptor):
        """on_response with nothing stashed should do nothing."""
        interceptor.on_response(_request(), 200)
        assert tracer.reporter.get_spans() == []

    def test_second_response_is_ignored(self, tracer, interceptor):
        """The span should be finished and reported only once."""
        request = _request()
        interceptor.on_request(request)
        interceptor.on_response(request, 200)
        interceptor.on_response(request, 500)
        assert len(tracer.reporter.get_spans()) == 1

    def test_cancel(self, tracer, interceptor):
        """A cancelled request should finish with status 499 and error."""
        request = _request()
        span = interceptor.on_request(request).span
        interceptor.on_cancel(request)
        assert span.tags[Tags.HTTP_STATUS_CODE] == CANCELLED_STATUS
        assert span.tags[Tags.ERROR] is True
        assert tracer.reporter.get_spans() == [span]
        assert tracer.active_span is None

    def test_inject_from_server_span(self, tracer, interceptor):
        """Downstream calls should carry the server span's context."""
        request = _request({TRACE_ID_HEADER: "4:3:2:1"})
        span = interceptor.on_request(request).span
        outbound = HeaderCarrier()
        tracer.inject(tracer.active_span, Format.HTTP_HEADERS, outbound)
        interceptor.on_response(request, 200)

        downstream = SpanContext.from_string(outbound.get(TRACE_ID_HEADER))
        assert downstream.trace_id == 4
        assert downstream.span_id == span.span_id
        assert downstream.parent_id == 3


# ===================================================================
# Path exclusion
# ===================================================================

class TestExcludedPaths:
    """Test path exclusion shared by the framework adapters."""

    @pytest.mark.parametrize("path", ["/health", "/health/", "/health/live"])
    def test_excluded(self, path):
        """The path itself and anything below it should be excluded."""
        assert is_excluded_path(path, ["/health"])

    @pytest.mark.parametrize("path", ["/healthz", "/health-check", "/", "/api/health"])
    def test_not_excluded(self, path):
        """Paths that only share a string prefix should be traced."""
        assert not is_excluded_path(path, ["/health"])

    def test_trailing_slash_in_exclusion(self):
        """A trailing slash on the excluded path should not matter."""
        assert is_excluded_path("/static/app.js", ["/static/"])
        assert is_excluded_path("/static", ["/static/"])
        assert not is_excluded_path("/staticfiles", ["/static/"])
