"""SQL implementation of IRoleStore.

Persists roles to the Roles table with parameterized statements. Each
operation checks out its own pooled connection and runs exactly one
statement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text

from identity.domain.entities import Role
from identity.domain.value_objects import MAX_NAME_LENGTH, is_blank
from identity.infrastructure.observability import (
    DefaultRoleStoreProbe,
    RoleStoreProbe,
)
from identity.infrastructure.sql_store import DATABASE_ERRORS, SqlStore
from identity.ports.results import (
    SUCCESS,
    Err,
    ErrorKind,
    IdentityErrorCode,
    IdentityResult,
    Ok,
)
from identity.ports.stores import IRoleStore

if TYPE_CHECKING:
    from sqlalchemy import Row
    from sqlalchemy.sql.elements import TextClause

    from infrastructure.database.connection import ConnectionFactory
    from shared_kernel.cancellation import CancellationToken

_ROLE_COLUMNS = '"Id", "Name", "NormalizedName", "ConcurrencyStamp"'

_INSERT_ROLE = text(
    'INSERT INTO "Roles" ("Id", "Name", "NormalizedName", "ConcurrencyStamp") '
    "VALUES (:id, :name, :normalized_name, :concurrency_stamp)"
)
_DELETE_ROLE = text('DELETE FROM "Roles" WHERE "Id" = :id')
_SELECT_ROLE_BY_ID = text(f'SELECT {_ROLE_COLUMNS} FROM "Roles" WHERE "Id" = :id')
# Names are not unique at this layer; ordering keeps the pick deterministic
_SELECT_ROLE_BY_NAME = text(
    f'SELECT {_ROLE_COLUMNS} FROM "Roles" '
    'WHERE "NormalizedName" = :normalized_name ORDER BY "Id"'
)
_SELECT_ALL_ROLES = text(f'SELECT {_ROLE_COLUMNS} FROM "Roles" ORDER BY "Id"')
_SELECT_NORMALIZED_NAME = text('SELECT "NormalizedName" FROM "Roles" WHERE "Id" = :id')
_SELECT_NAME = text('SELECT "Name" FROM "Roles" WHERE "Id" = :id')
_SELECT_ID_BY_NAME = text(
    'SELECT "Id" FROM "Roles" WHERE "NormalizedName" = :normalized_name ORDER BY "Id"'
)
_UPDATE_NORMALIZED_NAME = text(
    'UPDATE "Roles" SET "NormalizedName" = :normalized_name WHERE "Id" = :id'
)
_UPDATE_NAME = text('UPDATE "Roles" SET "Name" = :name WHERE "Id" = :id')
_UPDATE_ROLE = text(
    'UPDATE "Roles" SET "Name" = :name, "NormalizedName" = :normalized_name, '
    '"ConcurrencyStamp" = :concurrency_stamp WHERE "Id" = :id'
)

_DATABASE_ERROR_DESCRIPTION = "A database error occurred."


def _row_to_role(row: Row) -> Role:
    return Role(
        id=row.Id,
        name=row.Name,
        normalized_name=row.NormalizedName,
        concurrency_stamp=row.ConcurrencyStamp,
    )


class RoleStore(SqlStore, IRoleStore):
    """Role persistence backed by the Roles table.

    The store performs no name-collision check on create: two roles may share
    a normalized name here, and rejecting duplicates is left to the identity
    manager's validators.

    Writes that target a role the caller already holds (setters and update)
    treat a missing row as stale state and return Err(STALE, RoleNotFound).
    """

    _entity_name = "role"

    def __init__(
        self,
        connections: ConnectionFactory,
        probe: RoleStoreProbe | None = None,
        *,
        owns_engine: bool = False,
    ) -> None:
        """Initialize the store.

        Args:
            connections: Factory handing out pooled connections
            probe: Optional domain probe for observability
            owns_engine: Dispose the engine pool when the store is disposed
        """
        super().__init__(connections, owns_engine=owns_engine)
        self._probe = probe or DefaultRoleStoreProbe()

    async def create(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Insert a new role.

        The name is validated before any I/O. A failed insert is reported
        with a fixed description; the database error is only logged.

        Args:
            role: Role with id already assigned
            cancellation: Optional token, checked on entry

        Returns:
            Ok(None), Err(PRECONDITION, InvalidRoleName) or
            Err(DATABASE, DatabaseError)
        """
        if failure := self._enter("create", cancellation):
            return failure
        if role is None:
            return self._missing_role("create")
        if is_blank(role.name) or len(role.name) > MAX_NAME_LENGTH:
            return self._reject(
                "create",
                IdentityErrorCode.INVALID_ROLE_NAME,
                f"Role name is either empty, or length is greater than {MAX_NAME_LENGTH}.",
            )

        try:
            await self._execute(
                _INSERT_ROLE,
                {
                    "id": role.id,
                    "name": role.name,
                    "normalized_name": role.normalized_name,
                    "concurrency_stamp": role.concurrency_stamp,
                },
            )
        except DATABASE_ERRORS as e:
            return self._database_failure(
                "create",
                e,
                IdentityErrorCode.DATABASE_ERROR,
                "An error occurred while creating the role.",
            )

        self._probe.role_created(role.id, role.name)
        return SUCCESS

    async def delete(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Delete a role by id.

        Returns:
            Ok(None), Err(NOT_FOUND, RoleNotFound) when no row matched, or
            Err(DATABASE, DatabaseError)
        """
        if failure := self._enter("delete", cancellation):
            return failure
        if role is None:
            return self._missing_role("delete")

        try:
            deleted = await self._execute(_DELETE_ROLE, {"id": role.id})
        except DATABASE_ERRORS as e:
            return self._database_failure(
                "delete",
                e,
                IdentityErrorCode.DATABASE_ERROR,
                _DATABASE_ERROR_DESCRIPTION,
            )

        if deleted == 0:
            self._probe.role_not_found(role.id)
            return Err.of(
                ErrorKind.NOT_FOUND, IdentityErrorCode.ROLE_NOT_FOUND, "Role not found."
            )

        self._probe.role_deleted(role.id)
        return SUCCESS

    async def find_by_id(
        self, role_id: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[Role | None]:
        """Look up a role by id. Ok(None) when no row matches."""
        if failure := self._enter("find_by_id", cancellation):
            return failure
        if is_blank(role_id):
            return self._reject(
                "find_by_id",
                IdentityErrorCode.INVALID_ARGUMENT,
                "Role ID cannot be null or whitespace.",
            )

        try:
            row = await self._fetch_one(_SELECT_ROLE_BY_ID, {"id": role_id})
        except DATABASE_ERRORS as e:
            return self._database_failure(
                "find_by_id",
                e,
                IdentityErrorCode.DATABASE_ERROR,
                "An error occurred while finding the role.",
            )

        return self._found(row, role_id)

    async def find_by_name(
        self, normalized_name: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[Role | None]:
        """Look up a role by normalized name.

        When several roles share the name, the one with the lowest id wins.
        """
        if failure := self._enter("find_by_name", cancellation):
            return failure
        if is_blank(normalized_name):
            return self._reject(
                "find_by_name",
                IdentityErrorCode.INVALID_ARGUMENT,
                "Normalized role name cannot be null or whitespace.",
            )

        try:
            row = await self._fetch_one(
                _SELECT_ROLE_BY_NAME, {"normalized_name": normalized_name}
            )
        except DATABASE_ERRORS as e:
            return self._database_failure(
                "find_by_name",
                e,
                IdentityErrorCode.DATABASE_ERROR,
                "An error occurred while attempting to find the role by name.",
            )

        return self._found(row, normalized_name)

    async def get_normalized_name(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the stored normalized name of the role with role.id."""
        return await self._project(
            "get_normalized_name", role, _SELECT_NORMALIZED_NAME, "id", cancellation
        )

    async def get_name(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the stored name of the role with role.id."""
        return await self._project("get_name", role, _SELECT_NAME, "id", cancellation)

    async def get_id(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the id of the stored role whose normalized name is role.normalized_name."""
        return await self._project(
            "get_id", role, _SELECT_ID_BY_NAME, "normalized_name", cancellation
        )

    async def set_normalized_name(
        self,
        role: Role,
        normalized_name: str,
        cancellation: CancellationToken | None = None,
    ) -> IdentityResult[None]:
        """Persist a new normalized name and mirror it onto role."""
        if failure := self._enter("set_normalized_name", cancellation):
            return failure
        if role is None:
            return self._missing_role("set_normalized_name")
        if is_blank(normalized_name):
            return self._reject(
                "set_normalized_name",
                IdentityErrorCode.INVALID_ARGUMENT,
                "Normalized role name cannot be null or whitespace.",
            )

        result = await self._update_existing(
            "set_normalized_name",
            role,
            _UPDATE_NORMALIZED_NAME,
            {"normalized_name": normalized_name},
            "An error occurred while attempting to set the normalized role name.",
        )
        if result.succeeded:
            role.normalized_name = normalized_name
        return result

    async def set_name(
        self, role: Role, name: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Persist a new name and mirror it onto role."""
        if failure := self._enter("set_name", cancellation):
            return failure
        if role is None:
            return self._missing_role("set_name")
        if is_blank(name):
            return self._reject(
                "set_name",
                IdentityErrorCode.INVALID_ROLE_NAME,
                "Role name cannot be null or whitespace.",
            )
        if len(name) > MAX_NAME_LENGTH:
            return self._reject(
                "set_name",
                IdentityErrorCode.INVALID_ROLE_NAME,
                f"Role name cannot be more than {MAX_NAME_LENGTH} characters.",
            )

        result = await self._update_existing(
            "set_name",
            role,
            _UPDATE_NAME,
            {"name": name},
            "An error occurred while attempting to set the role name.",
        )
        if result.succeeded:
            role.name = name
        return result

    async def update(
        self, role: Role, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Persist name, normalized name and concurrency stamp by id.

        Returns:
            Ok(None), Err(PRECONDITION, InvalidRoleName) for a name over the
            length limit, Err(STALE, RoleNotFound) naming the id when the row
            is gone, or Err(DATABASE, DatabaseError)
        """
        if failure := self._enter("update", cancellation):
            return failure
        if role is None:
            return self._missing_role("update")
        if role.name is not None and len(role.name) > MAX_NAME_LENGTH:
            return self._reject(
                "update",
                IdentityErrorCode.INVALID_ROLE_NAME,
                f"Role name cannot be more than {MAX_NAME_LENGTH} characters.",
            )

        return await self._update_existing(
            "update",
            role,
            _UPDATE_ROLE,
            {
                "name": role.name,
                "normalized_name": role.normalized_name,
                "concurrency_stamp": role.concurrency_stamp,
            },
            "An error occurred while attempting to update the role.",
        )

    async def list_all(
        self, cancellation: CancellationToken | None = None
    ) -> IdentityResult[list[Role]]:
        """Return every role, ordered by id.

        Not paginated; the Roles table is expected to stay small.
        """
        if failure := self._enter("list_all", cancellation):
            return failure

        try:
            rows = await self._fetch_all(_SELECT_ALL_ROLES)
        except DATABASE_ERRORS as e:
            return self._database_failure(
                "list_all",
                e,
                IdentityErrorCode.DATABASE_ERROR,
                _DATABASE_ERROR_DESCRIPTION,
            )

        self._probe.roles_listed(len(rows))
        return Ok([_row_to_role(row) for row in rows])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _missing_role(self, operation: str) -> Err:
        return self._reject(
            operation, IdentityErrorCode.INVALID_ARGUMENT, "Role cannot be null."
        )

    def _found(self, row: Row | None, lookup: str) -> Ok[Role | None]:
        if row is None:
            self._probe.role_not_found(lookup)
            return Ok(None)
        self._probe.role_retrieved(row.Id)
        return Ok(_row_to_role(row))

    async def _project(
        self,
        operation: str,
        role: Role,
        statement: TextClause,
        key: str,
        cancellation: CancellationToken | None,
    ) -> IdentityResult[str | None]:
        """Run a single-column query keyed by the role attribute named key."""
        if failure := self._enter(operation, cancellation):
            return failure
        if role is None:
            return self._missing_role(operation)

        try:
            value = await self._fetch_scalar(statement, {key: getattr(role, key)})
        except DATABASE_ERRORS as e:
            return self._database_failure(
                operation,
                e,
                IdentityErrorCode.DATABASE_ERROR,
                _DATABASE_ERROR_DESCRIPTION,
            )
        return Ok(value)

    async def _update_existing(
        self,
        operation: str,
        role: Role,
        statement: TextClause,
        values: dict[str, str | None],
        failure_description: str,
    ) -> IdentityResult[None]:
        """Update a role the caller already holds; zero rows means stale state."""
        try:
            updated = await self._execute(statement, {**values, "id": role.id})
        except DATABASE_ERRORS as e:
            return self._database_failure(
                operation, e, IdentityErrorCode.DATABASE_ERROR, failure_description
            )

        if updated == 0:
            self._probe.stale_role(role.id, operation)
            return Err.of(
                ErrorKind.STALE,
                IdentityErrorCode.ROLE_NOT_FOUND,
                f"No role found with ID {role.id}.",
            )

        self._probe.role_updated(role.id, sorted(values))
        return SUCCESS
