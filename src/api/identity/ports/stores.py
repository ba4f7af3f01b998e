"""Store protocols (ports) for the identity context.

These are the capability contracts the identity manager depends on. Every
operation returns an IdentityResult and takes an optional cancellation token
as its last argument, honored on entry only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from identity.domain.entities import Role, User
from identity.ports.results import IdentityResult

if TYPE_CHECKING:
    from shared_kernel.cancellation import CancellationToken


@runtime_checkable
class IRoleStore(Protocol):
    """Persistence capability for Role entities."""

    async def create(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Insert a new role.

        Args:
            role: Role with id already assigned

        Returns:
            Ok(None), or Err with InvalidRoleName when the name is blank or
            longer than 256 characters (no database call is made)
        """
        ...

    async def delete(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Delete a role by id.

        Returns:
            Ok(None), or Err(NOT_FOUND, RoleNotFound) if no row matched
        """
        ...

    async def find_by_id(
        self, role_id: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[Role | None]:
        """Look up a role by id. Ok(None) when absent."""
        ...

    async def find_by_name(
        self, normalized_name: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[Role | None]:
        """Look up a role by normalized name. Ok(None) when absent."""
        ...

    async def get_normalized_name(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the stored normalized name of a role."""
        ...

    async def get_name(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the stored name of a role."""
        ...

    async def get_id(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the stored id of the role with role.normalized_name."""
        ...

    async def set_normalized_name(
        self,
        role: Role,
        normalized_name: str,
        cancellation: CancellationToken | None = None,
    ) -> IdentityResult[None]:
        """Persist a new normalized name for an existing role.

        Returns:
            Ok(None), or Err(STALE, RoleNotFound) if the role row is gone
        """
        ...

    async def set_name(
        self, role: Role, name: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Persist a new name for an existing role.

        Returns:
            Ok(None), or Err(STALE, RoleNotFound) if the role row is gone
        """
        ...

    async def update(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Persist all mutable fields of an existing role.

        Returns:
            Ok(None), or Err(STALE, RoleNotFound) if the role row is gone
        """
        ...

    async def list_all(
        self, cancellation: CancellationToken | None = None
    ) -> IdentityResult[list[Role]]:
        """Return every role. Not paginated."""
        ...

    async def dispose(self) -> None:
        """Release the store. Later calls fail with StoreDisposed."""
        ...


@runtime_checkable
class IUserStore(Protocol):
    """Persistence capability for User entities."""

    async def create(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Insert a new user.

        Returns:
            Ok(None), or Err(CONFLICT, DuplicateUser) if the normalized user
            name or normalized email is already taken
        """
        ...

    async def delete(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Delete a user by id.

        Returns:
            Ok(None), or Err(NOT_FOUND, UserNotExist) if no row matched
        """
        ...

    async def find_by_id(
        self, user_id: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[User | None]:
        """Look up a user by id. Err(PRECONDITION) for a malformed id."""
        ...

    async def find_by_name(
        self, normalized_user_name: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[User | None]:
        """Look up a user by normalized user name. Ok(None) when absent."""
        ...

    async def get_normalized_user_name(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the stored normalized user name."""
        ...

    async def get_user_id(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str]:
        """Return the in-memory user id."""
        ...

    async def get_user_name(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Return the in-memory user name."""
        ...

    async def set_normalized_user_name(
        self,
        user: User,
        normalized_name: str,
        cancellation: CancellationToken | None = None,
    ) -> IdentityResult[None]:
        """Set the normalized user name on the user."""
        ...

    async def set_user_name(
        self, user: User, user_name: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Persist a new user name and mirror it onto the user."""
        ...

    async def update(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Persist all mutable fields of a user.

        Returns:
            Ok(None), or Err(NOT_FOUND, UserNotExist) if no row matched
        """
        ...

    async def dispose(self) -> None:
        """Release the store. Later calls fail with StoreDisposed."""
        ...


@runtime_checkable
class IUserPasswordStore(Protocol):
    """Password-hash capability for User entities."""

    async def get_password_hash(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the stored password hash."""
        ...

    async def set_password_hash(
        self,
        user: User,
        password_hash: str,
        cancellation: CancellationToken | None = None,
    ) -> IdentityResult[None]:
        """Persist a password hash and mirror it onto the user."""
        ...

    async def has_password(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[bool]:
        """Whether the stored password hash is non-empty."""
        ...
