"""Reporter module for tracegate."""

from tracegate.reporters.base import NullReporter, Reporter
from tracegate.reporters.logging import CompositeReporter, LoggingReporter
from tracegate.reporters.memory import InMemoryReporter
from tracegate.reporters.queue import QueueReporter

__all__ = [
    "Reporter",
    "NullReporter",
    "InMemoryReporter",
    "LoggingReporter",
    "CompositeReporter",
    "QueueReporter",
]
