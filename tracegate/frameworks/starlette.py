"""Starlette / FastAPI integration for tracegate."""

from __future__ import annotations

import asyncio

from tracegate.frameworks import is_excluded_path
from tracegate.interceptor import RequestContext, ServerInterceptor
from tracegate.tracing.tracer import Tracer, get_tracer

try:
    from starlette.datastructures import Headers, URL
    from starlette.types import ASGIApp, Message, Receive, Scope, Send
except ImportError:
    raise ImportError(
        "Starlette integration requires starlette. Install with: pip install starlette"
    )


class TracingMiddleware:
    """
    ASGI middleware that wraps every HTTP request in a server span.

    Written as plain ASGI rather than ``BaseHTTPMiddleware`` so that the
    endpoint runs in the same task as the hooks and sees the active span.

    Usage:
        from fastapi import FastAPI
        from tracegate.frameworks.starlette import TracingMiddleware

        app = FastAPI()
        app.add_middleware(TracingMiddleware, tracer=tracer)
    """

    def __init__(
        self,
        app: ASGIApp,
        tracer: Tracer | None = None,
        exclude_paths: list[str] | None = None,
    ) -> None:
        self.app = app
        self.tracer = tracer
        self.exclude_paths = exclude_paths or []

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        tracer = self.tracer or get_tracer()
        path = scope.get("path", "")
        if not tracer or is_excluded_path(path, self.exclude_paths):
            await self.app(scope, receive, send)
            return

        interceptor = ServerInterceptor(tracer)
        context = RequestContext(
            method=scope["method"],
            headers=Headers(scope=scope),
            url=str(URL(scope=scope)),
        )
        interceptor.on_request(context)

        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except asyncio.CancelledError:
            interceptor.on_cancel(context)
            raise
        except Exception as error:
            interceptor.on_response(context, 500, error=error)
            raise
        else:
            interceptor.on_response(context, status_code)
