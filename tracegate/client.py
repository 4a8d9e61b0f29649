"""Global tracegate client: builds and owns the process-wide tracer."""

from __future__ import annotations

import logging
from typing import Mapping

from tracegate.config import REPORTER_KINDS, options_from_env
from tracegate.errors import ConfigError
from tracegate.metrics import Metrics
from tracegate.reporters import (
    InMemoryReporter,
    LoggingReporter,
    NullReporter,
    QueueReporter,
    Reporter,
)
from tracegate.tracing.tracer import Tracer, get_tracer, set_tracer
from tracegate.types import TagValue, TracerOptions

logger = logging.getLogger(__name__)

# Global client instance
_client: TracegateClient | None = None


class TracegateClient:
    """Creates the tracer and its reporter pipeline from options."""

    def __init__(self, options: TracerOptions, reporter: Reporter | None = None) -> None:
        self.options = options
        self.metrics = Metrics()

        if options.debug:
            logging.getLogger("tracegate").setLevel(logging.DEBUG)

        self.reporter = reporter or self._create_reporter()
        self.tracer = Tracer(
            service_name=options.service_name,
            reporter=self.reporter,
            sampled=options.sampled,
            metrics=self.metrics,
            tags=options.tags,
        )

        logger.debug(
            "Client created for service %s (reporter=%s, sampled=%s)",
            options.service_name,
            type(self.reporter).__name__,
            options.sampled,
        )

    def _create_reporter(self) -> Reporter:
        kind = self.options.reporter
        if kind not in REPORTER_KINDS:
            raise ConfigError("Unknown reporter", details={"value": kind})
        if kind == "memory":
            return InMemoryReporter()

        delegate: Reporter = LoggingReporter() if kind == "logging" else NullReporter()
        return QueueReporter(
            delegate,
            max_queue_size=self.options.queue_size,
            flush_interval=self.options.flush_interval,
            metrics=self.metrics,
        )

    def flush(self, timeout: float | None = None) -> None:
        """Deliver queued spans."""
        self.tracer.flush(timeout)

    def close(self) -> None:
        """Flush and close the reporter, and unregister the tracer."""
        self.tracer.close()
        if get_tracer() is self.tracer:
            set_tracer(None)
        logger.debug("Client closed")


def init(
    service_name: str,
    sampled: bool = True,
    reporter: Reporter | str = "logging",
    queue_size: int = 1000,
    flush_interval: float = 1.0,
    tags: dict[str, TagValue] | None = None,
    debug: bool = False,
) -> Tracer:
    """
    Initialize tracegate and install the global tracer.

    ``reporter`` is either a reporter instance, used as is, or one of
    ``"memory"``, ``"logging"``, ``"null"``. Calling ``init`` again closes
    the previous client first.
    """
    options = TracerOptions(
        service_name=service_name,
        sampled=sampled,
        queue_size=queue_size,
        flush_interval=flush_interval,
        tags=dict(tags or {}),
        debug=debug,
    )
    if isinstance(reporter, str):
        options.reporter = reporter  # type: ignore[assignment]
        return _install(TracegateClient(options))
    return _install(TracegateClient(options, reporter=reporter))


def init_from_env(environ: Mapping[str, str] | None = None) -> Tracer:
    """Initialize tracegate from ``TRACEGATE_*`` environment variables."""
    return _install(TracegateClient(options_from_env(environ)))


def _install(client: TracegateClient) -> Tracer:
    global _client

    if _client:
        _client.close()

    _client = client
    set_tracer(client.tracer)
    return client.tracer


def get_client() -> TracegateClient | None:
    """Get the current client."""
    return _client


def flush(timeout: float | None = None) -> None:
    """Flush pending spans."""
    if not _client:
        return
    _client.flush(timeout)


def close() -> None:
    """Close the SDK."""
    global _client
    if not _client:
        return
    client = _client
    _client = None
    client.close()
