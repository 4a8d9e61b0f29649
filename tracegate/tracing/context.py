"""Span context: the identifying tuple carried across process boundaries."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Mapping

from tracegate.errors import MalformedHeaderError

FLAG_NONE = 0x00
FLAG_SAMPLED = 0x01
FLAG_DEBUG = 0x02

MAX_ID = (1 << 64) - 1

_HEX_FIELD = re.compile(r"[0-9a-f]{1,16}")


def generate_span_id() -> int:
    """Generate a random non-zero 64-bit identifier."""
    while True:
        value = int.from_bytes(os.urandom(8), "big")
        if value:
            return value


def generate_trace_id() -> int:
    """Generate a random non-zero 64-bit trace identifier."""
    return generate_span_id()


def format_id(value: int) -> str:
    """Lowercase hex without leading zeros."""
    return f"{value:x}"


def _parse_hex_field(name: str, value: str, header: str) -> int:
    if not _HEX_FIELD.fullmatch(value):
        raise MalformedHeaderError(
            f"Invalid {name} in span context", details={"value": header}
        )
    return int(value, 16)


@dataclass(frozen=True)
class SpanContext:
    """
    Immutable span context.

    ``parent_id`` is 0 for root spans. ``baggage`` is copied on construction
    so later changes to the caller's mapping do not leak into the context.
    """

    trace_id: int
    span_id: int
    parent_id: int = 0
    flags: int = FLAG_SAMPLED
    baggage: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "baggage", dict(self.baggage))

    @property
    def is_sampled(self) -> bool:
        return bool(self.flags & FLAG_SAMPLED)

    @property
    def is_debug(self) -> bool:
        return bool(self.flags & FLAG_DEBUG)

    def with_baggage_item(self, key: str, value: str) -> SpanContext:
        """Return a copy of this context with one baggage entry added or replaced."""
        baggage = dict(self.baggage)
        baggage[key] = value
        return SpanContext(
            trace_id=self.trace_id,
            span_id=self.span_id,
            parent_id=self.parent_id,
            flags=self.flags,
            baggage=baggage,
        )

    @classmethod
    def from_string(cls, value: str) -> SpanContext:
        """
        Parse ``traceId:spanId:parentId:flags``.

        Each field is 1 to 16 lowercase hex digits. Extra or missing fields,
        other characters and a zero trace or span id are all rejected.

        Raises:
            MalformedHeaderError: If the value cannot be decoded.

        Example:
            >>> SpanContext.from_string("4:3:2:1")
            SpanContext(trace_id=4, span_id=3, parent_id=2, flags=1, baggage={})
        """
        if not value:
            raise MalformedHeaderError("Empty span context")

        parts = value.strip().split(":")
        if len(parts) != 4:
            raise MalformedHeaderError(
                f"Expected 4 fields in span context, got {len(parts)}",
                details={"value": value},
            )

        trace_id = _parse_hex_field("trace id", parts[0], value)
        span_id = _parse_hex_field("span id", parts[1], value)
        parent_id = _parse_hex_field("parent id", parts[2], value)
        flags = _parse_hex_field("flags", parts[3], value)

        if trace_id == 0:
            raise MalformedHeaderError("Trace id must not be zero", details={"value": value})
        if span_id == 0:
            raise MalformedHeaderError("Span id must not be zero", details={"value": value})

        return cls(trace_id=trace_id, span_id=span_id, parent_id=parent_id, flags=flags)

    def __str__(self) -> str:
        return ":".join(
            format_id(v) for v in (self.trace_id, self.span_id, self.parent_id, self.flags)
        )
