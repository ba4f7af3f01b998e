"""Ports (interfaces) for the identity context.

Ports define the store contracts and the result model without specifying
implementation details, so the identity manager depends on capabilities
rather than on SQL.
"""

from identity.ports.exceptions import (
    DuplicateRecordError,
    IdentityStoreError,
    InvalidArgumentError,
    RecordNotFoundError,
    StaleRecordError,
    StoreDatabaseError,
)
from identity.ports.results import (
    SUCCESS,
    Err,
    ErrorKind,
    IdentityError,
    IdentityErrorCode,
    IdentityResult,
    Ok,
)
from identity.ports.stores import IRoleStore, IUserPasswordStore, IUserStore

__all__ = [
    "SUCCESS",
    "DuplicateRecordError",
    "Err",
    "ErrorKind",
    "IRoleStore",
    "IUserPasswordStore",
    "IUserStore",
    "IdentityError",
    "IdentityErrorCode",
    "IdentityResult",
    "IdentityStoreError",
    "InvalidArgumentError",
    "Ok",
    "RecordNotFoundError",
    "StaleRecordError",
    "StoreDatabaseError",
]
