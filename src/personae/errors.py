"""Typed error taxonomy for the personae core.

Per-subject and per-item failures are absorbed by the scanner and the
migration loop; only request-scoped operations raise these to callers.
"""

from __future__ import annotations


class PersonaeError(Exception):
    """Base class for all personae errors."""


class ValidationError(PersonaeError, ValueError):
    """Raised when input violates a record invariant.

    Attributes:
        code: Machine-readable reason (e.g. ``content_too_short``).
        message: Human-readable explanation.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class NotFound(PersonaeError, LookupError):
    """Raised when a slug is unknown to every source consulted."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"No profile with slug '{slug}'.")
        self.slug = slug


class DuplicateSlug(PersonaeError):
    """Raised when creating an override for a slug that already has one."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"An override for slug '{slug}' already exists.")
        self.slug = slug


class ServiceUnavailable(PersonaeError):
    """Raised for reads and writes while the subject index is not usable."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ScanError(PersonaeError):
    """Raised when the subjects root itself cannot be scanned."""


class MigrationError(PersonaeError):
    """Raised when a migration batch aborts; nothing from the batch is kept."""
