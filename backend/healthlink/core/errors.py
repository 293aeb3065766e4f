"""
Exception hierarchy for the storage layer.

Lookup misses are not errors: ``get``-style calls return ``None`` and
``delete``/``expire`` return ``False``. Only infrastructure failures and
rejected writes raise.
"""
from typing import Any, Optional


class HealthLinkError(Exception):
    """Base class for every error raised by this package."""


class StorageError(HealthLinkError):
    """The underlying storage medium failed or is unavailable."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class ConflictError(HealthLinkError):
    """A write would duplicate a value that must be unique."""

    def __init__(self, message: str, field: str, value: Any):
        super().__init__(message)
        self.field = field
        self.value = value


class InvalidInputError(HealthLinkError):
    """A payload or argument failed validation."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class AppendOnlyError(HealthLinkError):
    """An update or delete was attempted on an append-only collection."""

    def __init__(self, message: str, operation: str):
        super().__init__(message)
        self.operation = operation
