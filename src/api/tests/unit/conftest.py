"""Unit test fixtures.

Store tests run against an in-memory SQLite database through aiosqlite.
StaticPool hands every checkout the same underlying connection, so the
schema created here is visible to every statement a test issues.
"""

from collections.abc import AsyncIterator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from identity.infrastructure.observability import RoleStoreProbe, UserStoreProbe
from identity.infrastructure.tables import metadata
from infrastructure.database.connection import ConnectionFactory
from infrastructure.observability.probes import ConnectionProbe


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncIterator[AsyncEngine]:
    """Provide an in-memory database with the identity schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def mock_connection_probe() -> MagicMock:
    """Provide a mock connection probe."""
    return MagicMock(spec=ConnectionProbe)


@pytest.fixture
def connections(sqlite_engine, mock_connection_probe) -> ConnectionFactory:
    """Provide a connection factory over the in-memory database."""
    return ConnectionFactory(sqlite_engine, probe=mock_connection_probe)


@pytest.fixture
def mock_role_probe() -> MagicMock:
    """Provide a mock role store probe."""
    return MagicMock(spec=RoleStoreProbe)


@pytest.fixture
def mock_user_probe() -> MagicMock:
    """Provide a mock user store probe."""
    return MagicMock(spec=UserStoreProbe)
