"""Textual header codec for span contexts."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Mapping, Union
from urllib.parse import quote, unquote

from tracegate.errors import MalformedHeaderError
from tracegate.metrics import MALFORMED_HEADERS, Metrics
from tracegate.tracing.context import SpanContext
from tracegate.types import Tags

logger = logging.getLogger(__name__)

TRACE_ID_HEADER = "uber-trace-id"
BAGGAGE_HEADER_PREFIX = "uberctx-"
PEER_SERVICE_HEADER = "x-uber-source"

Carrier = Union["HeaderCarrier", Mapping[str, str], Iterable[tuple[str, str]]]


class HeaderCarrier:
    """
    Ordered (key, value) header pairs with case-insensitive lookup.

    Supports both directions: iteration for ``extract`` and ``put`` for
    ``inject``. Duplicate keys are kept in arrival order.
    """

    def __init__(self, headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None) -> None:
        self._pairs: list[tuple[str, str]] = []
        if headers is not None:
            for key, value in _iter_pairs(headers):
                self._pairs.append((key, value))

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._pairs))

    def __len__(self) -> int:
        return len(self._pairs)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __repr__(self) -> str:
        return f"HeaderCarrier({self._pairs!r})"

    def items(self) -> list[tuple[str, str]]:
        return list(self._pairs)

    def get(self, key: str, default: str | None = None) -> str | None:
        """First value for ``key``, compared case-insensitively."""
        lower = key.lower()
        for k, v in self._pairs:
            if k.lower() == lower:
                return v
        return default

    def get_all(self, key: str) -> list[str]:
        lower = key.lower()
        return [v for k, v in self._pairs if k.lower() == lower]

    def put(self, key: str, value: str) -> None:
        """Set ``key`` to a single value, replacing any existing entries."""
        lower = key.lower()
        self._pairs = [(k, v) for k, v in self._pairs if k.lower() != lower]
        self._pairs.append((key, value))

    def add(self, key: str, value: str) -> None:
        """Append a value without touching existing entries for ``key``."""
        self._pairs.append((key, value))

    def to_dict(self) -> dict[str, str]:
        """Plain dict, first value wins for duplicate keys."""
        result: dict[str, str] = {}
        for key, value in self._pairs:
            result.setdefault(key, value)
        return result


def _iter_pairs(carrier: Any) -> Iterable[tuple[str, str]]:
    """Yield raw header pairs from any supported carrier."""
    if isinstance(carrier, HeaderCarrier):
        return iter(carrier)
    # httpx.Headers.items() joins duplicates, multi_items() does not
    if hasattr(carrier, "multi_items"):
        return carrier.multi_items()
    if hasattr(carrier, "items"):
        return carrier.items()
    return iter(carrier)


def _put(carrier: Any, key: str, value: str) -> None:
    if hasattr(carrier, "put"):
        carrier.put(key, value)
    else:
        carrier[key] = value


class HeaderCodec:
    """
    Converts between a carrier of text headers and a SpanContext.

    With ``url_encoding`` enabled (the HTTP headers format) baggage values
    are percent-encoded on inject and all values are decoded on extract.
    """

    def __init__(self, url_encoding: bool = False, metrics: Metrics | None = None) -> None:
        self.url_encoding = url_encoding
        self.metrics = metrics

    def extract(self, carrier: Carrier) -> SpanContext | None:
        """
        Decode a span context from ``carrier``.

        Only the first ``uber-trace-id`` header is considered. Returns None
        when it is missing or malformed; never raises.
        """
        context: SpanContext | None = None
        seen_primary = False
        baggage: dict[str, str] = {}

        for key, value in _iter_pairs(carrier):
            lower = key.lower()
            if lower == TRACE_ID_HEADER:
                if seen_primary:
                    continue
                seen_primary = True
                try:
                    context = SpanContext.from_string(self._decode(value))
                except MalformedHeaderError as e:
                    logger.debug("Ignoring malformed %s header: %s", TRACE_ID_HEADER, e)
                    if self.metrics:
                        self.metrics.increment(MALFORMED_HEADERS)
            elif lower.startswith(BAGGAGE_HEADER_PREFIX):
                baggage_key = key[len(BAGGAGE_HEADER_PREFIX) :]
                if baggage_key:
                    baggage[baggage_key] = self._decode(value)

        if context is None:
            return None

        if baggage:
            context = SpanContext(
                trace_id=context.trace_id,
                span_id=context.span_id,
                parent_id=context.parent_id,
                flags=context.flags,
                baggage=baggage,
            )
        return context

    def inject(self, context: SpanContext, carrier: Any) -> None:
        """Write ``context`` and its baggage into ``carrier``."""
        _put(carrier, TRACE_ID_HEADER, str(context))
        for key, value in context.baggage.items():
            _put(carrier, BAGGAGE_HEADER_PREFIX + key, self._encode(value))

    def extract_tags(self, carrier: Carrier) -> dict[str, str]:
        """Tags carried outside the span context, currently only ``peer.service``."""
        for key, value in _iter_pairs(carrier):
            if key.lower() == PEER_SERVICE_HEADER and value:
                return {Tags.PEER_SERVICE: value}
        return {}

    def _encode(self, value: str) -> str:
        return quote(value, safe="") if self.url_encoding else value

    def _decode(self, value: str) -> str:
        return unquote(value) if self.url_encoding else value
