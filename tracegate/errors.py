"""Error hierarchy for tracegate."""

from __future__ import annotations

from typing import Any


class TracegateError(Exception):
    """Base exception for all tracegate errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class MalformedHeaderError(TracegateError):
    """Raised when a textual span context cannot be decoded."""

    pass


class UnsupportedFormatError(TracegateError):
    """Raised when inject/extract is asked for a format with no codec."""

    pass


class ConfigError(TracegateError):
    """Raised when configuration is invalid."""

    pass


class ReporterError(TracegateError):
    """Raised by reporters that cannot accept a span."""

    pass
