"""Unit tests for ConnectionFactory."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from infrastructure.database.connection import ConnectionFactory
from infrastructure.database.exceptions import DatabaseConnectionError, DatabaseError


class TestTransaction:
    """Tests for the scoped transaction checkout."""

    @pytest.mark.asyncio
    async def test_commits_on_normal_exit(self, connections):
        """Writes inside the block should be visible afterwards."""
        async with connections.transaction() as conn:
            await conn.execute(
                text('INSERT INTO "Roles" ("Id", "Name") VALUES (:id, :name)'),
                {"id": "r1", "name": "Admin"},
            )

        async with connections.transaction() as conn:
            count = (await conn.execute(text('SELECT COUNT(*) FROM "Roles"'))).scalar()

        assert count == 1

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, connections, mock_connection_probe):
        """An exception inside the block should discard its writes."""
        with pytest.raises(RuntimeError):
            async with connections.transaction() as conn:
                await conn.execute(
                    text('INSERT INTO "Roles" ("Id", "Name") VALUES (:id, :name)'),
                    {"id": "r1", "name": "Admin"},
                )
                raise RuntimeError("boom")

        async with connections.transaction() as conn:
            count = (await conn.execute(text('SELECT COUNT(*) FROM "Roles"'))).scalar()

        assert count == 0
        mock_connection_probe.transaction_rolled_back.assert_called_once()

    @pytest.mark.asyncio
    async def test_probe_sees_checkout_and_release(
        self, connections, mock_connection_probe
    ):
        """Every checkout should be paired with a release."""
        async with connections.transaction():
            mock_connection_probe.connection_acquired.assert_called_once()
            mock_connection_probe.connection_released.assert_not_called()

        mock_connection_probe.connection_released.assert_called_once()

    @pytest.mark.asyncio
    async def test_connection_released_after_error(
        self, connections, mock_connection_probe
    ):
        """The connection goes back to the pool when the block raises."""
        with pytest.raises(ValueError):
            async with connections.transaction():
                raise ValueError("bad input")

        mock_connection_probe.connection_released.assert_called_once()

    @pytest.mark.asyncio
    async def test_checkout_failure_raises_connection_error(self):
        """A failed checkout should surface as DatabaseConnectionError."""
        engine = MagicMock()
        engine.connect = AsyncMock(
            side_effect=OperationalError("connect", {}, Exception("refused"))
        )
        probe = MagicMock()
        factory = ConnectionFactory(engine, probe=probe)

        with pytest.raises(DatabaseConnectionError) as exc_info:
            async with factory.transaction():
                pass

        assert isinstance(exc_info.value, DatabaseError)
        probe.connection_failed.assert_called_once()
        probe.connection_acquired.assert_not_called()


class TestDispose:
    """Tests for pool disposal."""

    @pytest.mark.asyncio
    async def test_dispose_closes_engine_pool(self):
        """dispose() should dispose the engine and report it."""
        engine = MagicMock()
        engine.dispose = AsyncMock()
        probe = MagicMock()
        factory = ConnectionFactory(engine, probe=probe)

        await factory.dispose()

        engine.dispose.assert_awaited_once()
        probe.pool_closed.assert_called_once()

    @pytest.mark.asyncio
    async def test_exposes_engine(self, sqlite_engine):
        """The engine property returns the wrapped engine."""
        factory = ConnectionFactory(sqlite_engine)

        assert factory.engine is sqlite_engine
