"""Database infrastructure - shared connection primitives."""

from infrastructure.database.connection import ConnectionFactory
from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
)

__all__ = [
    "ConnectionFactory",
    "DatabaseConnectionError",
    "DatabaseError",
]
