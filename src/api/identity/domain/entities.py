"""Role and User entities persisted by the identity stores.

Entities are created by the identity manager and handed to a store. They are
mutable: store setters mirror the values they persist onto the object the
caller holds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from identity.domain.value_objects import (
    new_concurrency_stamp,
    new_identifier,
    normalize_key,
)


@dataclass(eq=False)
class Role:
    """A named role.

    Attributes:
        id: Stable identifier, immutable after creation
        name: Display name
        normalized_name: Lookup form of name
        concurrency_stamp: Opaque version token owned by the caller
    """

    id: str
    name: str | None = None
    normalized_name: str | None = None
    concurrency_stamp: str | None = field(default_factory=new_concurrency_stamp)

    @classmethod
    def new(cls, name: str) -> Role:
        """Create an unsaved role with a fresh id and normalized name."""
        return cls(id=new_identifier(), name=name, normalized_name=normalize_key(name))

    def __str__(self) -> str:
        """Return string representation."""
        return f"Role({self.name})"

    def __eq__(self, other: object) -> bool:
        """Roles are equal if they have the same ID (identity-based equality)."""
        if not isinstance(other, Role):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash based on ID for use in sets and dicts."""
        return hash(self.id)


@dataclass(eq=False)
class User:
    """An account with its lookup keys and account-state fields.

    The account-state fields (confirmation flags, lockout, failure count,
    stamps) are stored and returned verbatim; the stores never interpret them.
    password_hash is opaque credential material and is only ever stored,
    returned or checked for presence.
    """

    id: str
    user_name: str | None = None
    normalized_user_name: str | None = None
    email: str | None = None
    normalized_email: str | None = None
    email_confirmed: bool = False
    password_hash: str | None = None
    security_stamp: str | None = None
    concurrency_stamp: str | None = field(default_factory=new_concurrency_stamp)
    phone_number: str | None = None
    phone_number_confirmed: bool = False
    two_factor_enabled: bool = False
    lockout_end: datetime | None = None
    lockout_enabled: bool = False
    access_failed_count: int = 0

    @classmethod
    def new(cls, user_name: str, email: str) -> User:
        """Create an unsaved user with a fresh id and normalized keys."""
        return cls(
            id=new_identifier(),
            user_name=user_name,
            normalized_user_name=normalize_key(user_name),
            email=email,
            normalized_email=normalize_key(email),
            security_stamp=new_concurrency_stamp(),
        )

    def __str__(self) -> str:
        """Return string representation."""
        return f"User({self.user_name})"

    def __eq__(self, other: object) -> bool:
        """Users are equal if they have the same ID (identity-based equality)."""
        if not isinstance(other, User):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash based on ID for use in sets and dicts."""
        return hash(self.id)
