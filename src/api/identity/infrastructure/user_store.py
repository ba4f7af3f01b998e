"""SQL implementation of IUserStore and IUserPasswordStore.

Persists users to the Users table with parameterized statements. Creation
runs its collision check and insert in one transaction; update and delete
are single statements whose affected-row count decides the outcome, so no
existence check can go stale between two round trips.

On PostgreSQL, creation first takes transaction-scoped advisory locks on the
normalized user name and normalized email. Creates that could collide queue
behind each other, and each sees the rows committed before it runs its check.
EmailIndex is not unique, so the lock is the only guard for email collisions.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Any

from sqlalchemy import BigInteger, DateTime, bindparam, text
from sqlalchemy.exc import IntegrityError

from identity.domain.entities import User
from identity.domain.value_objects import MAX_NAME_LENGTH, is_blank, is_valid_identifier
from identity.infrastructure.observability import (
    DefaultUserStoreProbe,
    UserStoreProbe,
)
from identity.infrastructure.sql_store import DATABASE_ERRORS, SqlStore
from identity.infrastructure.tables import USER_RESULT_TYPES
from identity.ports.results import (
    SUCCESS,
    Err,
    ErrorKind,
    IdentityErrorCode,
    IdentityResult,
    Ok,
)
from identity.ports.stores import IUserPasswordStore, IUserStore

if TYPE_CHECKING:
    from sqlalchemy import Row
    from sqlalchemy.sql.elements import TextClause
    from sqlalchemy.sql.selectable import TextualSelect

    from infrastructure.database.connection import ConnectionFactory
    from shared_kernel.cancellation import CancellationToken

_USER_COLUMNS = (
    '"Id", "UserName", "NormalizedUserName", "Email", "NormalizedEmail", '
    '"EmailConfirmed", "PasswordHash", "SecurityStamp", "ConcurrencyStamp", '
    '"PhoneNumber", "PhoneNumberConfirmed", "TwoFactorEnabled", "LockoutEnd", '
    '"LockoutEnabled", "AccessFailedCount"'
)

_LOCK_CREATION_KEY = text("SELECT pg_advisory_xact_lock(:lock_key)").bindparams(
    bindparam("lock_key", type_=BigInteger)
)
_SELECT_COLLISION = text(
    'SELECT "Id" FROM "Users" '
    'WHERE "NormalizedUserName" = :normalized_user_name '
    'OR "NormalizedEmail" = :normalized_email'
)
_INSERT_USER = text(
    f'INSERT INTO "Users" ({_USER_COLUMNS}) VALUES ('
    ":id, :user_name, :normalized_user_name, :email, :normalized_email, "
    ":email_confirmed, :password_hash, :security_stamp, :concurrency_stamp, "
    ":phone_number, :phone_number_confirmed, :two_factor_enabled, :lockout_end, "
    ":lockout_enabled, :access_failed_count)"
).bindparams(bindparam("lockout_end", type_=DateTime(timezone=True)))
_UPDATE_USER = text(
    'UPDATE "Users" SET '
    '"UserName" = :user_name, '
    '"NormalizedUserName" = :normalized_user_name, '
    '"Email" = :email, '
    '"NormalizedEmail" = :normalized_email, '
    '"EmailConfirmed" = :email_confirmed, '
    '"PasswordHash" = :password_hash, '
    '"SecurityStamp" = :security_stamp, '
    '"ConcurrencyStamp" = :concurrency_stamp, '
    '"PhoneNumber" = :phone_number, '
    '"PhoneNumberConfirmed" = :phone_number_confirmed, '
    '"TwoFactorEnabled" = :two_factor_enabled, '
    '"LockoutEnd" = :lockout_end, '
    '"LockoutEnabled" = :lockout_enabled, '
    '"AccessFailedCount" = :access_failed_count '
    'WHERE "Id" = :id'
).bindparams(bindparam("lockout_end", type_=DateTime(timezone=True)))
_DELETE_USER = text('DELETE FROM "Users" WHERE "Id" = :id')

_SELECT_USER_BY_ID = text(
    f'SELECT {_USER_COLUMNS} FROM "Users" WHERE "Id" = :id'
).columns(**USER_RESULT_TYPES)
_SELECT_USER_BY_NAME = text(
    f'SELECT {_USER_COLUMNS} FROM "Users" '
    'WHERE "NormalizedUserName" = :normalized_user_name'
).columns(**USER_RESULT_TYPES)
_SELECT_USER_BY_EMAIL = text(
    f'SELECT {_USER_COLUMNS} FROM "Users" '
    'WHERE "NormalizedEmail" = :normalized_email ORDER BY "Id"'
).columns(**USER_RESULT_TYPES)
_SELECT_ALL_USERS = text(
    f'SELECT {_USER_COLUMNS} FROM "Users" ORDER BY "Id"'
).columns(**USER_RESULT_TYPES)

_SELECT_NORMALIZED_USER_NAME = text(
    'SELECT "NormalizedUserName" FROM "Users" WHERE "Id" = :id'
)
_SELECT_PASSWORD_HASH = text('SELECT "PasswordHash" FROM "Users" WHERE "Id" = :id')

_UPDATE_NORMALIZED_USER_NAME = text(
    'UPDATE "Users" SET "NormalizedUserName" = :normalized_user_name WHERE "Id" = :id'
)
_UPDATE_PASSWORD_HASH = text(
    'UPDATE "Users" SET "PasswordHash" = :password_hash WHERE "Id" = :id'
)
_UPDATE_USER_NAME = text('UPDATE "Users" SET "UserName" = :user_name WHERE "Id" = :id')

_DUPLICATE_USER_DESCRIPTION = "A user with this username or email already exists."


def compute_lock_key(key: str) -> int:
    """Compute a stable advisory lock key.

    Uses SHA-256 so the key is the same across processes and Python versions.
    Returns a value within PostgreSQL's signed 64-bit bigint range.
    """
    hash_hex = hashlib.sha256(key.encode()).hexdigest()[:16]
    return int(hash_hex, 16) & 0x7FFFFFFFFFFFFFFF


def creation_lock_keys(user: User) -> list[int]:
    """Advisory lock keys shared by every create that could collide with user.

    Sorted, so two creates locking overlapping keys take them in the same
    order and cannot deadlock.
    """
    return sorted(
        {
            compute_lock_key(f"Users.NormalizedUserName:{user.normalized_user_name}"),
            compute_lock_key(f"Users.NormalizedEmail:{user.normalized_email}"),
        }
    )


def _user_params(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "user_name": user.user_name,
        "normalized_user_name": user.normalized_user_name,
        "email": user.email,
        "normalized_email": user.normalized_email,
        "email_confirmed": user.email_confirmed,
        "password_hash": user.password_hash,
        "security_stamp": user.security_stamp,
        "concurrency_stamp": user.concurrency_stamp,
        "phone_number": user.phone_number,
        "phone_number_confirmed": user.phone_number_confirmed,
        "two_factor_enabled": user.two_factor_enabled,
        "lockout_end": user.lockout_end,
        "lockout_enabled": user.lockout_enabled,
        "access_failed_count": user.access_failed_count,
    }


def _row_to_user(row: Row) -> User:
    return User(
        id=row.Id,
        user_name=row.UserName,
        normalized_user_name=row.NormalizedUserName,
        email=row.Email,
        normalized_email=row.NormalizedEmail,
        email_confirmed=row.EmailConfirmed,
        password_hash=row.PasswordHash,
        security_stamp=row.SecurityStamp,
        concurrency_stamp=row.ConcurrencyStamp,
        phone_number=row.PhoneNumber,
        phone_number_confirmed=row.PhoneNumberConfirmed,
        two_factor_enabled=row.TwoFactorEnabled,
        lockout_end=row.LockoutEnd,
        lockout_enabled=row.LockoutEnabled,
        access_failed_count=row.AccessFailedCount,
    )


class UserStore(SqlStore, IUserStore, IUserPasswordStore):
    """User persistence backed by the Users table.

    get_user_id and get_user_name answer from the in-memory user; the
    normalized user name and password hash getters read the database.

    set_normalized_user_name only changes the in-memory user unless the
    store is built with persist_normalized_user_name=True, in which case it
    also writes the column like set_user_name and set_password_hash do.
    """

    _entity_name = "user"

    def __init__(
        self,
        connections: ConnectionFactory,
        probe: UserStoreProbe | None = None,
        *,
        persist_normalized_user_name: bool = False,
        owns_engine: bool = False,
    ) -> None:
        """Initialize the store.

        Args:
            connections: Factory handing out pooled connections
            probe: Optional domain probe for observability
            persist_normalized_user_name: Write normalized user names set
                through set_normalized_user_name to the database
            owns_engine: Dispose the engine pool when the store is disposed
        """
        super().__init__(connections, owns_engine=owns_engine)
        self._probe = probe or DefaultUserStoreProbe()
        self._persist_normalized_user_name = persist_normalized_user_name

    @property
    def persists_normalized_user_name(self) -> bool:
        return self._persist_normalized_user_name

    async def create(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Insert a new user.

        Arguments are validated before any I/O. The collision check and the
        insert share one transaction, serialized on PostgreSQL against other
        creates with the same normalized user name or email. A unique-index
        violation raised by the insert is reported the same way as a
        collision found by the check.

        Args:
            user: User with id already assigned
            cancellation: Optional token, checked on entry

        Returns:
            Ok(None); Err(PRECONDITION) with InvalidUserId, InvalidUserName or
            InvalidEmail; Err(CONFLICT, DuplicateUser) without saying which
            field collided; or Err(DATABASE, CreateAsync)
        """
        if failure := self._enter("create", cancellation):
            return failure
        if user is None:
            return self._missing_user("create")
        if not is_valid_identifier(user.id):
            return self._reject(
                "create", IdentityErrorCode.INVALID_USER_ID, "Invalid user id format."
            )
        if not user.user_name:
            return self._reject(
                "create",
                IdentityErrorCode.INVALID_USER_NAME,
                "Username cannot be null or empty.",
            )
        if not user.email:
            return self._reject(
                "create",
                IdentityErrorCode.INVALID_EMAIL,
                "Email cannot be null or empty.",
            )

        try:
            async with self._connections.transaction() as conn:
                if conn.dialect.name == "postgresql":
                    for lock_key in creation_lock_keys(user):
                        await conn.execute(_LOCK_CREATION_KEY, {"lock_key": lock_key})

                existing = await conn.execute(
                    _SELECT_COLLISION,
                    {
                        "normalized_user_name": user.normalized_user_name,
                        "normalized_email": user.normalized_email,
                    },
                )
                if existing.first() is not None:
                    return self._duplicate(user)

                inserted = await conn.execute(_INSERT_USER, _user_params(user))
        except IntegrityError:
            return self._duplicate(user)
        except DATABASE_ERRORS as e:
            return self._database_failure(
                "create",
                e,
                IdentityErrorCode.CREATE_FAILED,
                "An error occurred while creating a user.",
            )

        if inserted.rowcount != 1:
            return self._database_failure(
                "create",
                RuntimeError(f"insert affected {inserted.rowcount} rows"),
                IdentityErrorCode.CREATE_FAILED,
                "Could not create user.",
            )

        self._probe.user_created(user.id, user.user_name)
        return SUCCESS

    async def delete(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Delete a user by id.

        Returns:
            Ok(None), Err(NOT_FOUND, UserNotExist) when no row matched, or
            Err(DATABASE, DeleteFailed)
        """
        if failure := self._enter("delete", cancellation):
            return failure
        if user is None:
            return self._missing_user("delete")

        try:
            deleted = await self._execute(_DELETE_USER, {"id": user.id})
        except DATABASE_ERRORS as e:
            return self._database_failure(
                "delete",
                e,
                IdentityErrorCode.DELETE_FAILED,
                f"Could not delete user with id {user.id}.",
            )

        if deleted == 0:
            return self._not_exist(user.id)

        self._probe.user_deleted(user.id)
        return SUCCESS

    async def find_by_id(
        self, user_id: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[User | None]:
        """Look up a user by id.

        The id must be a well-formed ULID; anything else is refused without
        querying.
        """
        if failure := self._enter("find_by_id", cancellation):
            return failure
        if not is_valid_identifier(user_id):
            return self._reject(
                "find_by_id", IdentityErrorCode.INVALID_USER_ID, "Invalid user id format."
            )

        return await self._find(
            "find_by_id", _SELECT_USER_BY_ID, {"id": user_id}, user_id
        )

    async def find_by_name(
        self, normalized_user_name: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[User | None]:
        """Look up a user by normalized user name."""
        if failure := self._enter("find_by_name", cancellation):
            return failure
        if is_blank(normalized_user_name):
            return self._reject(
                "find_by_name",
                IdentityErrorCode.INVALID_ARGUMENT,
                "The normalized user name cannot be null or whitespace.",
            )

        return await self._find(
            "find_by_name",
            _SELECT_USER_BY_NAME,
            {"normalized_user_name": normalized_user_name},
            normalized_user_name,
        )

    async def find_by_email(
        self, normalized_email: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[User | None]:
        """Look up a user by normalized email."""
        if failure := self._enter("find_by_email", cancellation):
            return failure
        if is_blank(normalized_email):
            return self._reject(
                "find_by_email",
                IdentityErrorCode.INVALID_ARGUMENT,
                "The normalized email cannot be null or whitespace.",
            )

        return await self._find(
            "find_by_email",
            _SELECT_USER_BY_EMAIL,
            {"normalized_email": normalized_email},
            normalized_email,
        )

    async def get_normalized_user_name(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the stored normalized user name."""
        return await self._read_column(
            "get_normalized_user_name", user, _SELECT_NORMALIZED_USER_NAME, cancellation
        )

    async def get_password_hash(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        """Read the stored password hash."""
        return await self._read_column(
            "get_password_hash", user, _SELECT_PASSWORD_HASH, cancellation
        )

    async def has_password(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[bool]:
        """Whether the stored password hash is non-empty."""
        result = await self._read_column(
            "has_password", user, _SELECT_PASSWORD_HASH, cancellation
        )
        if isinstance(result, Err):
            return result
        return Ok(bool(result.value))

    async def get_user_id(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str]:
        if failure := self._enter("get_user_id", cancellation):
            return failure
        if user is None:
            return self._missing_user("get_user_id")
        return Ok(str(user.id))

    async def get_user_name(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[str | None]:
        if failure := self._enter("get_user_name", cancellation):
            return failure
        if user is None:
            return self._missing_user("get_user_name")
        return Ok(user.user_name)

    async def set_normalized_user_name(
        self,
        user: User,
        normalized_name: str,
        cancellation: CancellationToken | None = None,
    ) -> IdentityResult[None]:
        """Set the normalized user name.

        Writes the column only when the store persists normalized user
        names; the in-memory user is updated either way.
        """
        if failure := self._enter("set_normalized_user_name", cancellation):
            return failure
        if user is None:
            return self._missing_user("set_normalized_user_name")
        if normalized_name is None:
            return self._reject(
                "set_normalized_user_name",
                IdentityErrorCode.INVALID_ARGUMENT,
                "Normalized user name cannot be null.",
            )

        if self._persist_normalized_user_name:
            result = await self._write_column(
                "set_normalized_user_name",
                user,
                _UPDATE_NORMALIZED_USER_NAME,
                {"normalized_user_name": normalized_name},
            )
            if isinstance(result, Err):
                return result

        user.normalized_user_name = normalized_name
        return SUCCESS

    async def set_password_hash(
        self,
        user: User,
        password_hash: str,
        cancellation: CancellationToken | None = None,
    ) -> IdentityResult[None]:
        """Persist a password hash, then mirror it onto the user.

        The hash is opaque; an empty string clears the password.
        """
        if failure := self._enter("set_password_hash", cancellation):
            return failure
        if user is None:
            return self._missing_user("set_password_hash")
        if password_hash is None:
            return self._reject(
                "set_password_hash",
                IdentityErrorCode.INVALID_ARGUMENT,
                "Password hash cannot be null.",
            )

        result = await self._write_column(
            "set_password_hash",
            user,
            _UPDATE_PASSWORD_HASH,
            {"password_hash": password_hash},
        )
        if isinstance(result, Err):
            return result

        user.password_hash = password_hash
        return SUCCESS

    async def set_user_name(
        self, user: User, user_name: str, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Persist a user name of at most 256 characters, then mirror it onto the user."""
        if failure := self._enter("set_user_name", cancellation):
            return failure
        if user is None:
            return self._missing_user("set_user_name")
        if is_blank(user_name):
            return self._reject(
                "set_user_name",
                IdentityErrorCode.INVALID_USER_NAME,
                "Username cannot be null or white space.",
            )
        if len(user_name) > MAX_NAME_LENGTH:
            return self._reject(
                "set_user_name",
                IdentityErrorCode.INVALID_USER_NAME,
                f"Username cannot be more than {MAX_NAME_LENGTH} characters.",
            )

        result = await self._write_column(
            "set_user_name", user, _UPDATE_USER_NAME, {"user_name": user_name}
        )
        if isinstance(result, Err):
            return result

        user.user_name = user_name
        return SUCCESS

    async def update(
        self, user: User, cancellation: CancellationToken | None = None
    ) -> IdentityResult[None]:
        """Persist every mutable column of the user by id.

        Returns:
            Ok(None), Err(NOT_FOUND, UserNotExist) when no row matched, or
            Err(DATABASE, UpdateFailed)
        """
        if failure := self._enter("update", cancellation):
            return failure
        if user is None:
            return self._missing_user("update")

        params = _user_params(user)
        try:
            updated = await self._execute(_UPDATE_USER, params)
        except IntegrityError:
            return self._duplicate(user)
        except DATABASE_ERRORS as e:
            return self._database_failure(
                "update",
                e,
                IdentityErrorCode.UPDATE_FAILED,
                f"An error occurred while updating the user with ID {user.id}.",
            )

        if updated == 0:
            return self._not_exist(user.id)

        self._probe.user_updated(user.id, sorted(k for k in params if k != "id"))
        return SUCCESS

    async def list_all(
        self, cancellation: CancellationToken | None = None
    ) -> IdentityResult[list[User]]:
        """Return every user, ordered by id. Not paginated."""
        if failure := self._enter("list_all", cancellation):
            return failure

        try:
            rows = await self._fetch_all(_SELECT_ALL_USERS)
        except DATABASE_ERRORS as e:
            return self._database_failure(
                "list_all",
                e,
                IdentityErrorCode.DATABASE_ERROR,
                "A database error occurred.",
            )

        self._probe.users_listed(len(rows))
        return Ok([_row_to_user(row) for row in rows])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _missing_user(self, operation: str) -> Err:
        return self._reject(
            operation, IdentityErrorCode.INVALID_ARGUMENT, "User cannot be null."
        )

    def _duplicate(self, user: User) -> Err:
        self._probe.duplicate_user(user.id)
        return Err.of(
            ErrorKind.CONFLICT,
            IdentityErrorCode.DUPLICATE_USER,
            _DUPLICATE_USER_DESCRIPTION,
        )

    def _not_exist(self, user_id: str) -> Err:
        self._probe.user_not_found(user_id)
        return Err.of(
            ErrorKind.NOT_FOUND,
            IdentityErrorCode.USER_NOT_EXIST,
            f"User with id {user_id} does not exist.",
        )

    async def _find(
        self,
        operation: str,
        statement: TextualSelect,
        params: dict[str, str],
        lookup: str,
    ) -> IdentityResult[User | None]:
        try:
            row = await self._fetch_one(statement, params)
        except DATABASE_ERRORS as e:
            return self._database_failure(
                operation,
                e,
                IdentityErrorCode.DATABASE_ERROR,
                "An error occurred while retrieving the user from the database.",
            )

        if row is None:
            self._probe.user_not_found(lookup)
            return Ok(None)
        self._probe.user_retrieved(row.Id)
        return Ok(_row_to_user(row))

    async def _read_column(
        self,
        operation: str,
        user: User,
        statement: TextClause,
        cancellation: CancellationToken | None,
    ) -> IdentityResult[Any]:
        """Read one column of the user's row by id."""
        if failure := self._enter(operation, cancellation):
            return failure
        if user is None:
            return self._missing_user(operation)

        try:
            value = await self._fetch_scalar(statement, {"id": user.id})
        except DATABASE_ERRORS as e:
            return self._database_failure(
                operation,
                e,
                IdentityErrorCode.DATABASE_ERROR,
                "A database error occurred.",
            )
        return Ok(value)

    async def _write_column(
        self,
        operation: str,
        user: User,
        statement: TextClause,
        values: dict[str, str],
    ) -> IdentityResult[None]:
        """Write one column of the user's row by id.

        A user not yet inserted matches no row; that is not an error, since
        the identity manager sets fields on new users before create.
        """
        try:
            await self._execute(statement, {**values, "id": user.id})
        except IntegrityError:
            return self._duplicate(user)
        except DATABASE_ERRORS as e:
            return self._database_failure(
                operation,
                e,
                IdentityErrorCode.UPDATE_FAILED,
                "An error occurred while updating the user.",
            )

        self._probe.user_updated(user.id, sorted(values))
        return SUCCESS
