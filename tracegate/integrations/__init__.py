"""Integrations module for tracegate."""

from tracegate.integrations.logging import SpanLoggingHandler, TraceContextFilter

__all__ = ["SpanLoggingHandler", "TraceContextFilter"]
