"""Configuration loading for tracegate."""

from __future__ import annotations

import os
from typing import Mapping

from tracegate.errors import ConfigError
from tracegate.types import TagValue, TracerOptions

ENV_SERVICE_NAME = "TRACEGATE_SERVICE_NAME"
ENV_SAMPLED = "TRACEGATE_SAMPLED"
ENV_REPORTER = "TRACEGATE_REPORTER"
ENV_QUEUE_SIZE = "TRACEGATE_QUEUE_SIZE"
ENV_FLUSH_INTERVAL = "TRACEGATE_FLUSH_INTERVAL"
ENV_TAGS = "TRACEGATE_TAGS"
ENV_DEBUG = "TRACEGATE_DEBUG"

REPORTER_KINDS = ("memory", "logging", "null")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_bool(name: str, value: str) -> bool:
    """Parse a boolean flag such as ``true``/``0``."""
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {name}", details={"value": value})


def parse_tags(value: str) -> dict[str, TagValue]:
    """
    Parse tracer-level tags.

    Format: ``key=value,key2=value2``. Whitespace around keys and values is
    stripped; empty entries are skipped.

    Raises:
        ConfigError: If an entry has no ``=`` or an empty key

    Example:
        >>> parse_tags("region=eu-west-1, pod=api-7")
        {'region': 'eu-west-1', 'pod': 'api-7'}
    """
    tags: dict[str, TagValue] = {}
    if not value:
        return tags

    for pair in value.split(","):
        trimmed = pair.strip()
        if not trimmed:
            continue
        if "=" not in trimmed:
            raise ConfigError("Tag entries must look like key=value", details={"entry": trimmed})
        key, tag_value = trimmed.split("=", 1)
        key = key.strip()
        if not key:
            raise ConfigError("Tag key must not be empty", details={"entry": trimmed})
        tags[key] = tag_value.strip()

    return tags


def options_from_env(
    environ: Mapping[str, str] | None = None,
    service_name: str | None = None,
) -> TracerOptions:
    """
    Build ``TracerOptions`` from ``TRACEGATE_*`` environment variables.

    An explicit ``service_name`` wins over the environment.

    Raises:
        ConfigError: If the service name is missing or a value is invalid
    """
    env = os.environ if environ is None else environ

    name = service_name or env.get(ENV_SERVICE_NAME, "").strip()
    if not name:
        raise ConfigError(f"Service name is required (set {ENV_SERVICE_NAME})")

    options = TracerOptions(service_name=name)

    if ENV_SAMPLED in env:
        options.sampled = parse_bool(ENV_SAMPLED, env[ENV_SAMPLED])

    if ENV_REPORTER in env:
        reporter = env[ENV_REPORTER].strip().lower()
        if reporter not in REPORTER_KINDS:
            raise ConfigError(
                f"Unknown reporter, expected one of {', '.join(REPORTER_KINDS)}",
                details={"value": reporter},
            )
        options.reporter = reporter  # type: ignore[assignment]

    if ENV_QUEUE_SIZE in env:
        try:
            options.queue_size = int(env[ENV_QUEUE_SIZE])
        except ValueError:
            raise ConfigError(
                f"Invalid integer for {ENV_QUEUE_SIZE}", details={"value": env[ENV_QUEUE_SIZE]}
            ) from None
        if options.queue_size < 1:
            raise ConfigError(f"{ENV_QUEUE_SIZE} must be at least 1")

    if ENV_FLUSH_INTERVAL in env:
        try:
            options.flush_interval = float(env[ENV_FLUSH_INTERVAL])
        except ValueError:
            raise ConfigError(
                f"Invalid number for {ENV_FLUSH_INTERVAL}",
                details={"value": env[ENV_FLUSH_INTERVAL]},
            ) from None
        if options.flush_interval <= 0:
            raise ConfigError(f"{ENV_FLUSH_INTERVAL} must be positive")

    if ENV_TAGS in env:
        options.tags = parse_tags(env[ENV_TAGS])

    if ENV_DEBUG in env:
        options.debug = parse_bool(ENV_DEBUG, env[ENV_DEBUG])

    return options
