"""Result model returned by every identity store operation.

An operation returns Ok(value) or Err(error). Validation failures, missing
records and database failures all travel through Err, distinguished by
ErrorKind, so callers branch on a value instead of catching exceptions.

Example:
    match await store.find_by_name("ADMIN"):
        case Ok(value=None):
            ...  # no such role
        case Ok(value=role):
            ...
        case Err(error=error):
            log.warning("lookup_failed", code=error.code)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, NoReturn, TypeVar, Union

from identity.ports.exceptions import (
    DuplicateRecordError,
    IdentityStoreError,
    InvalidArgumentError,
    RecordNotFoundError,
    StaleRecordError,
    StoreDatabaseError,
)

T = TypeVar("T")


class ErrorKind(StrEnum):
    """Category of a failed store operation."""

    PRECONDITION = "precondition"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STALE = "stale"
    DATABASE = "database"


class IdentityErrorCode(StrEnum):
    """Machine-readable codes carried by IdentityError."""

    INVALID_ROLE_NAME = "InvalidRoleName"
    ROLE_NOT_FOUND = "RoleNotFound"
    DATABASE_ERROR = "DatabaseError"
    USER_NOT_EXIST = "UserNotExist"
    DUPLICATE_USER = "DuplicateUser"
    CREATE_FAILED = "CreateAsync"
    UPDATE_FAILED = "UpdateFailed"
    DELETE_FAILED = "DeleteFailed"
    INVALID_USER_NAME = "InvalidUserName"
    INVALID_EMAIL = "InvalidEmail"
    INVALID_USER_ID = "InvalidUserId"
    INVALID_ARGUMENT = "InvalidArgument"
    STORE_DISPOSED = "StoreDisposed"


_EXCEPTIONS: dict[ErrorKind, type[IdentityStoreError]] = {
    ErrorKind.PRECONDITION: InvalidArgumentError,
    ErrorKind.NOT_FOUND: RecordNotFoundError,
    ErrorKind.CONFLICT: DuplicateRecordError,
    ErrorKind.STALE: StaleRecordError,
    ErrorKind.DATABASE: StoreDatabaseError,
}


@dataclass(frozen=True)
class IdentityError:
    """Why an operation failed.

    Attributes:
        code: Machine-readable code, usually an IdentityErrorCode value
        description: Human-readable message, safe to show to end users
        kind: Failure category
    """

    code: str
    description: str
    kind: ErrorKind

    def to_exception(self) -> IdentityStoreError:
        """Build the exception matching this error's kind."""
        return _EXCEPTIONS[self.kind](self)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the operation's value."""

    value: T

    @property
    def succeeded(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Return the value."""
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying an IdentityError."""

    error: IdentityError

    @property
    def succeeded(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        """Raise the IdentityStoreError subclass matching the error kind."""
        raise self.error.to_exception()

    @classmethod
    def of(cls, kind: ErrorKind, code: str, description: str) -> Err:
        """Shorthand for Err(IdentityError(code, description, kind))."""
        return cls(IdentityError(code=code, description=description, kind=kind))


IdentityResult = Union[Ok[T], Err]

SUCCESS: Ok[None] = Ok(None)
