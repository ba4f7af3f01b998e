"""Exceptions for the identity stores.

Stores never raise these themselves; they return an Err result. The
exceptions are raised by Err.unwrap() for callers that prefer to let a
failure unwind the call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from identity.ports.results import IdentityError


class IdentityStoreError(Exception):
    """Base exception carrying the IdentityError that caused it."""

    def __init__(self, error: IdentityError):
        super().__init__(f"{error.code}: {error.description}")
        self.error = error

    @property
    def code(self) -> str:
        """Machine-readable error code."""
        return self.error.code


class InvalidArgumentError(IdentityStoreError):
    """Raised when the caller passed invalid arguments or used a disposed store."""

    pass


class RecordNotFoundError(IdentityStoreError):
    """Raised when a record the caller asked for does not exist.

    This is an expected outcome; the application layer may branch on it.
    """

    pass


class DuplicateRecordError(IdentityStoreError):
    """Raised when a write would violate a uniqueness rule."""

    pass


class StaleRecordError(IdentityStoreError):
    """Raised when a record the caller already held has disappeared.

    Indicates a logic error in the caller, not a retryable condition.
    """

    pass


class StoreDatabaseError(IdentityStoreError):
    """Raised when the database failed the statement.

    The message never contains database error text; details are logged by
    the store probe.
    """

    pass
