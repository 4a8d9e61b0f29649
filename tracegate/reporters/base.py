"""Base reporter for tracegate."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tracegate.tracing.span import Span


class Reporter(ABC):
    """Receives finished, sampled spans from the tracer."""

    @abstractmethod
    def report(self, span: Span) -> None:
        """Accept a finished span. Must not block the caller."""
        pass

    def flush(self, timeout: float | None = None) -> None:
        """Deliver anything buffered."""
        pass

    def close(self) -> None:
        """Flush and release resources."""
        self.flush()


class NullReporter(Reporter):
    """Discards every span."""

    def report(self, span: Span) -> None:
        pass
