"""Dependency injection for the identity context.

Composes infrastructure resources (the shared connection factory, settings)
with the identity stores. Stores are transient: one per request, all sharing
the application's engine pool.
"""

from typing import Annotated

from fastapi import Depends

from identity.infrastructure.observability import (
    DefaultRoleStoreProbe,
    DefaultUserStoreProbe,
    RoleStoreProbe,
    UserStoreProbe,
)
from identity.infrastructure.role_store import RoleStore
from identity.infrastructure.user_store import UserStore
from infrastructure.database.connection import ConnectionFactory
from infrastructure.database.dependencies import get_connection_factory
from infrastructure.settings import IdentitySettings, get_identity_settings


def get_role_store_probe() -> RoleStoreProbe:
    """Get RoleStoreProbe instance.

    Returns:
        DefaultRoleStoreProbe instance for observability
    """
    return DefaultRoleStoreProbe()


def get_user_store_probe() -> UserStoreProbe:
    """Get UserStoreProbe instance.

    Returns:
        DefaultUserStoreProbe instance for observability
    """
    return DefaultUserStoreProbe()


def get_role_store(
    connections: Annotated[ConnectionFactory, Depends(get_connection_factory)],
    probe: Annotated[RoleStoreProbe, Depends(get_role_store_probe)],
) -> RoleStore:
    """Get RoleStore instance.

    Args:
        connections: Shared connection factory
        probe: Role store probe for observability

    Returns:
        RoleStore that leaves the shared engine running when disposed
    """
    return RoleStore(connections, probe=probe)


def get_user_store(
    connections: Annotated[ConnectionFactory, Depends(get_connection_factory)],
    probe: Annotated[UserStoreProbe, Depends(get_user_store_probe)],
    settings: Annotated[IdentitySettings, Depends(get_identity_settings)],
) -> UserStore:
    """Get UserStore instance.

    Args:
        connections: Shared connection factory
        probe: User store probe for observability
        settings: Identity settings deciding normalized user name persistence

    Returns:
        UserStore that leaves the shared engine running when disposed
    """
    return UserStore(
        connections,
        probe=probe,
        persist_normalized_user_name=settings.persist_normalized_user_name,
    )
