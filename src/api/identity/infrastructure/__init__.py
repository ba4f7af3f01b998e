"""SQL-backed identity stores."""

from identity.infrastructure.role_store import RoleStore
from identity.infrastructure.tables import metadata, roles_table, users_table
from identity.infrastructure.user_store import UserStore

__all__ = [
    "RoleStore",
    "UserStore",
    "metadata",
    "roles_table",
    "users_table",
]
