"""Database dependency injection for FastAPI.

Provides the application-scoped engine and connection factory the identity
stores are built on.
"""

from __future__ import annotations

import threading

from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.database.connection import ConnectionFactory
from infrastructure.database.engines import create_write_engine
from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultConnectionProbe
from infrastructure.settings import get_database_settings, get_identity_settings

_probe = DefaultConnectionProbe()

# Module-level instances (created on first use)
_write_engine: AsyncEngine | None = None
_connection_factory: ConnectionFactory | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def get_write_engine() -> AsyncEngine:
    """Get the database engine (singleton).

    Creates engine on first call and caches for subsequent calls.
    Uses double-check locking for thread-safe initialization. The first call
    also configures structlog at IDENTITY_LOG_LEVEL, before the connection
    probe logs anything.

    Returns:
        Configured async engine
    """
    global _write_engine, _connection_factory
    if _write_engine is None:
        with _engine_lock:
            if _write_engine is None:
                configure_logging(get_identity_settings().log_level)
                settings = get_database_settings()
                _write_engine = create_write_engine(settings)
                _connection_factory = ConnectionFactory(_write_engine, probe=_probe)
    return _write_engine


def get_connection_factory() -> ConnectionFactory:
    """Provide the shared connection factory (FastAPI dependency).

    Usage:
        @router.post("/roles")
        async def create_role(
            factory: ConnectionFactory = Depends(get_connection_factory),
        ):
            store = RoleStore(factory)
            ...

    Returns:
        ConnectionFactory bound to the singleton engine
    """
    get_write_engine()
    assert _connection_factory is not None
    return _connection_factory


async def close_database_connections() -> None:
    """Close all database engine connections.

    Should be called on application shutdown to properly cleanup connections.
    Also resets the factory to allow reinitialization.
    """
    global _write_engine, _connection_factory

    if _connection_factory is not None:
        await _connection_factory.dispose()
    elif _write_engine is not None:
        await _write_engine.dispose()

    _write_engine = None
    _connection_factory = None
