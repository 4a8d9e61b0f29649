"""Active scope registry: which span is current for the running task."""

from __future__ import annotations

import contextvars
import logging
from typing import Any

from tracegate.metrics import SCOPE_MISUSE, Metrics
from tracegate.tracing.span import Span
from tracegate.types import SpanState

logger = logging.getLogger(__name__)


class Scope:
    """
    Binding of a span as the active span of the current task.

    Closing the scope restores whichever scope was active before it. With
    ``finish_on_close`` the span is finished right after the scope closes.
    """

    def __init__(self, registry: ActiveScopeRegistry, span: Span, finish_on_close: bool) -> None:
        self._registry = registry
        self._span = span
        self._finish_on_close = finish_on_close
        self._closed = False
        self._discarded = False

    @property
    def span(self) -> Span:
        return self._span

    @property
    def registry(self) -> ActiveScopeRegistry:
        return self._registry

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Deactivate the span; a second call only records misuse."""
        first_close = not self._closed
        self._closed = True
        if self._discarded:
            self._discarded = False
        else:
            self._registry.deactivate(self)
        if first_close and self._finish_on_close:
            self._span.finish()

    def __enter__(self) -> Scope:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_val is not None:
            self._span.record_exception(exc_val)
        self.close()

    def __repr__(self) -> str:
        return f"Scope({self._span!r}, closed={self._closed})"


class ActiveScopeRegistry:
    """
    Per-task LIFO stack of active scopes.

    The stack lives in a ``contextvars.ContextVar`` holding an immutable
    tuple, so every thread and every asyncio task sees its own stack. Child
    tasks start from a snapshot of their parent's stack; threads start empty
    and must activate a span explicitly.

    Misuse never raises: closing out of order unwinds the stack down to the
    closed scope, and closing a scope that is not on the stack is ignored.
    Both are counted under ``scope_misuse`` and logged.
    """

    def __init__(self, metrics: Metrics | None = None) -> None:
        self.metrics = metrics or Metrics()
        self._stack: contextvars.ContextVar[tuple[Scope, ...]] = contextvars.ContextVar(
            f"tracegate_scopes_{id(self):x}", default=()
        )

    def activate(self, span: Span, finish_on_close: bool = False) -> Scope:
        """Push ``span`` and return the scope whose ``close()`` pops it."""
        scope = Scope(self, span, finish_on_close)
        self._stack.set(self._stack.get() + (scope,))
        span._set_state(SpanState.ACTIVE)
        return scope

    def deactivate(self, scope: Scope) -> None:
        """Pop ``scope``; called by ``Scope.close()``."""
        stack = self._stack.get()

        if stack and stack[-1] is scope:
            self._stack.set(stack[:-1])
        else:
            index = next((i for i, s in enumerate(stack) if s is scope), None)
            self.metrics.increment(SCOPE_MISUSE)
            if index is None:
                logger.warning("Closed scope for %r is not active in this task", scope.span)
            else:
                orphaned = stack[index + 1 :]
                logger.warning(
                    "Scope for %r closed out of order, discarding %d scope(s) above it",
                    scope.span,
                    len(orphaned),
                )
                for other in orphaned:
                    other._discarded = True
                    other.span._set_state(SpanState.INACTIVE)
                self._stack.set(stack[:index])

        scope.span._set_state(SpanState.INACTIVE)

    def active_scope(self) -> Scope | None:
        stack = self._stack.get()
        return stack[-1] if stack else None

    def active(self) -> Span | None:
        """The span of the innermost open scope, if any."""
        scope = self.active_scope()
        return scope.span if scope else None

    def depth(self) -> int:
        return len(self._stack.get())
