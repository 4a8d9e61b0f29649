"""Framework adapters for tracegate.

Each adapter imports its framework lazily; import the submodule you need,
e.g. ``tracegate.frameworks.flask``.
"""

from __future__ import annotations

from typing import Iterable


def is_excluded_path(path: str, exclude_paths: Iterable[str]) -> bool:
    """
    Whether ``path`` is one of ``exclude_paths`` or lies below one of them.

    Matching stops at path segment boundaries: excluding ``/health`` covers
    ``/health`` and ``/health/live`` but not ``/healthz``.
    """
    for excluded in exclude_paths:
        prefix = excluded.rstrip("/")
        if path == excluded or path == prefix or path.startswith(prefix + "/"):
            return True
    return False
