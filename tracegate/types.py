"""Type definitions for tracegate."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, Union

if TYPE_CHECKING:
    from tracegate.tracing.context import SpanContext

TagValue = Union[str, int, float, bool]


class Tags:
    """Standard tag keys set by tracegate."""

    SPAN_KIND = "span.kind"
    HTTP_METHOD = "http.method"
    HTTP_URL = "http.url"
    HTTP_STATUS_CODE = "http.status_code"
    PEER_SERVICE = "peer.service"
    ERROR = "error"
    ERROR_KIND = "error.kind"


class SpanKind(str, Enum):
    """Values of the ``span.kind`` tag."""

    SERVER = "server"
    CLIENT = "client"
    PRODUCER = "producer"
    CONSUMER = "consumer"


class ReferenceType(str, Enum):
    """Relationship between a span and a referenced context."""

    CHILD_OF = "child_of"
    FOLLOWS_FROM = "follows_from"


class SpanState(str, Enum):
    """Lifecycle of a span with respect to the scope registry."""

    CREATED = "created"
    ACTIVE = "active"
    INACTIVE = "inactive"
    FINISHED = "finished"


class Format(str, Enum):
    """Carrier formats understood by ``Tracer.inject`` and ``Tracer.extract``."""

    TEXT_MAP = "text_map"
    HTTP_HEADERS = "http_headers"


@dataclass(frozen=True)
class SpanReference:
    """A typed pointer from a span to another span's context."""

    kind: ReferenceType
    context: SpanContext

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"kind": self.kind.value, "context": str(self.context)}


@dataclass
class LogRecord:
    """A timestamped set of fields logged on a span."""

    timestamp_micros: int
    fields: dict[str, TagValue] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"timestamp_micros": self.timestamp_micros, "fields": dict(self.fields)}


@dataclass
class TracerOptions:
    """Configuration options for the global tracer."""

    service_name: str
    sampled: bool = True
    reporter: Literal["memory", "logging", "null"] = "logging"
    queue_size: int = 1000
    flush_interval: float = 1.0
    tags: dict[str, TagValue] = field(default_factory=dict)
    debug: bool = False
