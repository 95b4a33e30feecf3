# src/zentask/errors.py

"""Error taxonomy shared by stores, the reconciler and the advisor."""

from __future__ import annotations


class ZenTaskError(Exception):
    """Base class for application errors."""


class StoreUnavailable(ZenTaskError):
    """Read path failure: the backend could not be reached or parsed."""


class WriteRejected(ZenTaskError):
    """Write path failure: the backend refused or lost the write."""


class AdvisoryUnavailable(ZenTaskError):
    """AI backend missing, unreachable or returned something unusable."""


class TasksLoading(ZenTaskError):
    """A mutation was attempted before the initial load finished."""
