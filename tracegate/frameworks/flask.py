"""Flask integration for tracegate."""

from __future__ import annotations

from tracegate.frameworks import is_excluded_path
from tracegate.interceptor import RequestContext, ServerInterceptor
from tracegate.tracing.tracer import Tracer, get_tracer

try:
    from flask import Flask, g, request
    from flask.wrappers import Response
except ImportError:
    raise ImportError("Flask integration requires flask. Install with: pip install flask")


def init_app(
    app: Flask,
    tracer: Tracer | None = None,
    exclude_paths: list[str] | None = None,
) -> None:
    """
    Trace every request served by a Flask app.

    Uses the global tracer when ``tracer`` is not given.

    Usage:
        from flask import Flask
        import tracegate
        from tracegate.frameworks.flask import init_app

        app = Flask(__name__)
        tracegate.init(service_name="orders")
        init_app(app)
    """
    exclude = exclude_paths or []

    def _interceptor() -> ServerInterceptor | None:
        active = tracer or get_tracer()
        return ServerInterceptor(active) if active else None

    @app.before_request
    def tracegate_before_request() -> None:
        """Start the server span before any view runs."""
        g.tracegate_request = None

        if is_excluded_path(request.path, exclude):
            return

        interceptor = _interceptor()
        if not interceptor:
            return

        context = RequestContext(
            method=request.method,
            headers=request.headers,
            url=request.url,
        )
        interceptor.on_request(context)
        g.tracegate_request = (interceptor, context)
        g.tracegate_status = None

    @app.after_request
    def tracegate_after_request(response: Response) -> Response:
        """Remember the status; the span is finished at teardown."""
        if getattr(g, "tracegate_request", None):
            g.tracegate_status = response.status_code
        return response

    @app.teardown_request
    def tracegate_teardown_request(error: BaseException | None) -> None:
        """Finish the server span, also when the view raised."""
        pending = getattr(g, "tracegate_request", None)
        if not pending:
            return
        g.tracegate_request = None

        interceptor, context = pending
        status = getattr(g, "tracegate_status", None)
        if status is None:
            status = 500
        interceptor.on_response(context, status, error=error)
