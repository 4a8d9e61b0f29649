"""Tracing decorators for tracegate."""

from __future__ import annotations

import asyncio
import functools
from typing import Callable, ParamSpec, TypeVar

from tracegate.tracing.tracer import get_tracer
from tracegate.types import TagValue

P = ParamSpec("P")
T = TypeVar("T")


def traced(
    name: str | None = None,
    tags: dict[str, TagValue] | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator to run a function inside an active span of the global tracer.

    The span is a child of whatever span is active when the function is
    called. Exceptions mark the span as failed and are re-raised. Without a
    global tracer the function runs untraced.

    Args:
        name: Operation name. Defaults to the function name.
        tags: Static tags to add to the span

    Example:
        @traced()
        def load_user(user_id: str):
            return db.get(user_id)

        @traced(name="charge", tags={"component": "billing"})
        async def charge(order_id: str):
            ...
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        operation_name = name or func.__name__

        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                tracer = get_tracer()
                if not tracer:
                    return await func(*args, **kwargs)  # type: ignore

                with tracer.start_active_span(operation_name, tags=tags):
                    return await func(*args, **kwargs)  # type: ignore

            return async_wrapper  # type: ignore
        else:

            @functools.wraps(func)
            def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                tracer = get_tracer()
                if not tracer:
                    return func(*args, **kwargs)

                with tracer.start_active_span(operation_name, tags=tags):
                    return func(*args, **kwargs)

            return sync_wrapper  # type: ignore

    return decorator
