"""Scoped connection checkout for the SQL stores.

Every store operation checks one connection out of the engine pool, runs its
statements inside a single transaction and hands the connection back, whatever
way the operation exits.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator

from sqlalchemy.exc import SQLAlchemyError

from infrastructure.database.exceptions import DatabaseConnectionError
from infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine


class ConnectionFactory:
    """Hands out pooled connections, one transaction per checkout.

    The factory never keeps a connection between calls, so a single instance
    can be shared by concurrent operations; each operation owns its checkout
    exclusively.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        probe: ConnectionProbe | None = None,
    ):
        """Initialize the connection factory.

        Args:
            engine: Pooled async engine
            probe: Optional observability probe
        """
        self._engine = engine
        self._probe = probe or DefaultConnectionProbe()

    @property
    def engine(self) -> AsyncEngine:
        """The engine connections are checked out of."""
        return self._engine

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Check out a connection and run a transaction on it.

        Commits when the block exits normally and rolls back when it raises.
        The connection goes back to the pool on every exit path.

        Yields:
            An AsyncConnection with a transaction already begun

        Raises:
            DatabaseConnectionError: If no connection can be checked out.
        """
        try:
            conn = await self._engine.connect()
        except (SQLAlchemyError, OSError) as e:
            self._probe.connection_failed(error=e)
            raise DatabaseConnectionError(
                "Failed to check out a database connection"
            ) from e

        self._probe.connection_acquired()
        try:
            async with conn.begin():
                yield conn
        except Exception as e:
            self._probe.transaction_rolled_back(error=e)
            raise
        finally:
            await conn.close()
            self._probe.connection_released()

    async def dispose(self) -> None:
        """Close every pooled connection held by the engine."""
        await self._engine.dispose()
        self._probe.pool_closed()
