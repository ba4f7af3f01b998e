"""Database-specific exceptions shared by the persistence adapters."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when a connection cannot be checked out of the pool."""

    pass
