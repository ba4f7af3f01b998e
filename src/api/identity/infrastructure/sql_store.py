"""Common plumbing for the SQL-backed identity stores.

Holds what RoleStore and UserStore share: the entry checks every operation
runs (cancellation, disposal), statement execution on a scoped connection
checkout, and the mapping of refusals and database failures to Err results.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from sqlalchemy.exc import SQLAlchemyError

from identity.ports.results import Err, ErrorKind, IdentityErrorCode
from infrastructure.database.exceptions import DatabaseError

if TYPE_CHECKING:
    from sqlalchemy import Row
    from sqlalchemy.sql.elements import TextClause
    from sqlalchemy.sql.selectable import TextualSelect

    from identity.infrastructure.observability import RoleStoreProbe, UserStoreProbe
    from infrastructure.database.connection import ConnectionFactory
    from shared_kernel.cancellation import CancellationToken

# Everything a statement can fail with once it reaches the connection layer
DATABASE_ERRORS = (SQLAlchemyError, DatabaseError)


class SqlStore:
    """Base class for stores that run parameterized SQL on pooled connections.

    Each statement helper checks out its own connection, so one store
    instance may serve concurrent calls. Subclasses set _probe and
    _entity_name.
    """

    _probe: RoleStoreProbe | UserStoreProbe
    _entity_name: str

    def __init__(
        self,
        connections: ConnectionFactory,
        *,
        owns_engine: bool = False,
    ) -> None:
        """Initialize the store.

        Args:
            connections: Factory handing out pooled connections
            owns_engine: Dispose the engine pool when the store is disposed
        """
        self._connections = connections
        self._owns_engine = owns_engine
        self._disposed = False

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    async def dispose(self) -> None:
        """Release the store.

        Operations called afterwards return Err(PRECONDITION, StoreDisposed).
        """
        if self._disposed:
            return
        self._disposed = True
        if self._owns_engine:
            await self._connections.dispose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    # ------------------------------------------------------------------
    # Entry checks and failure mapping
    # ------------------------------------------------------------------

    def _enter(
        self, operation: str, cancellation: CancellationToken | None
    ) -> Err | None:
        """Run the checks every operation starts with.

        Raises:
            asyncio.CancelledError: If cancellation was requested.

        Returns:
            An Err if the store was disposed, otherwise None
        """
        if cancellation is not None:
            cancellation.raise_if_cancellation_requested()
        if self._disposed:
            return self._reject(
                operation,
                IdentityErrorCode.STORE_DISPOSED,
                f"The {self._entity_name} store has been disposed.",
            )
        return None

    def _reject(self, operation: str, code: str, description: str) -> Err:
        """Refuse an operation whose arguments are invalid."""
        self._probe.operation_rejected(operation=operation, code=code)
        return Err.of(ErrorKind.PRECONDITION, code, description)

    def _database_failure(
        self, operation: str, error: Exception, code: str, description: str
    ) -> Err:
        """Log the database error and return a failure without its text."""
        self._probe.database_error(operation=operation, error=error)
        return Err.of(ErrorKind.DATABASE, code, description)

    # ------------------------------------------------------------------
    # Statement execution, one connection checkout per call
    # ------------------------------------------------------------------

    async def _execute(
        self, statement: TextClause, params: Mapping[str, Any]
    ) -> int:
        """Execute a write statement and return the affected-row count."""
        async with self._connections.transaction() as conn:
            result = await conn.execute(statement, dict(params))
            return result.rowcount

    async def _fetch_one(
        self, statement: TextClause | TextualSelect, params: Mapping[str, Any]
    ) -> Row | None:
        """Return the first row of a query, or None."""
        async with self._connections.transaction() as conn:
            result = await conn.execute(statement, dict(params))
            return result.first()

    async def _fetch_scalar(
        self, statement: TextClause, params: Mapping[str, Any]
    ) -> Any:
        """Return the first column of the first row, or None."""
        async with self._connections.transaction() as conn:
            result = await conn.execute(statement, dict(params))
            return result.scalar()

    async def _fetch_all(
        self, statement: TextClause | TextualSelect, params: Mapping[str, Any] | None = None
    ) -> list[Row]:
        """Return every row of a query."""
        async with self._connections.transaction() as conn:
            result = await conn.execute(statement, dict(params or {}))
            return list(result.all())
