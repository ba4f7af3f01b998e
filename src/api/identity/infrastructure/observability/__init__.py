"""Domain-Oriented Observability for the identity stores."""

from identity.infrastructure.observability.store_probe import (
    DefaultRoleStoreProbe,
    DefaultUserStoreProbe,
    RoleStoreProbe,
    UserStoreProbe,
)

__all__ = [
    "RoleStoreProbe",
    "DefaultRoleStoreProbe",
    "UserStoreProbe",
    "DefaultUserStoreProbe",
]
