"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance. Tests are skipped
when the database cannot be reached.
"""

from collections.abc import AsyncIterator
import os

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy.exc import SQLAlchemyError

from identity.infrastructure.tables import metadata
from infrastructure.database.connection import ConnectionFactory
from infrastructure.database.engines import create_write_engine
from infrastructure.settings import DatabaseSettings


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires database)",
    )


@pytest.fixture(scope="session")
def integration_db_settings() -> DatabaseSettings:
    """Database settings for integration tests.

    Override with environment variables:
        IDENTITY_DB_HOST, IDENTITY_DB_PORT, etc.
    """
    return DatabaseSettings(
        host=os.getenv("IDENTITY_DB_HOST", "localhost"),
        port=int(os.getenv("IDENTITY_DB_PORT", "5432")),
        database=os.getenv("IDENTITY_DB_DATABASE", "identity"),
        username=os.getenv("IDENTITY_DB_USERNAME", "identity"),
        password=SecretStr(os.getenv("IDENTITY_DB_PASSWORD", "identity_dev_password")),
    )


@pytest_asyncio.fixture
async def pg_connections(
    integration_db_settings: DatabaseSettings,
) -> AsyncIterator[ConnectionFactory]:
    """Provide a connection factory over a freshly created schema.

    The identity tables are dropped and recreated around each test.
    """
    engine = create_write_engine(integration_db_settings)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.drop_all)
            await conn.run_sync(metadata.create_all)
    except (SQLAlchemyError, OSError) as e:
        await engine.dispose()
        pytest.skip(f"PostgreSQL not reachable: {type(e).__name__}")

    factory = ConnectionFactory(engine)
    yield factory

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await factory.dispose()
