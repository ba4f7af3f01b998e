"""Domain layer for the identity context.

Entities and value objects with no knowledge of SQL or web frameworks.
"""

from identity.domain.entities import Role, User
from identity.domain.value_objects import (
    MAX_NAME_LENGTH,
    is_valid_identifier,
    new_identifier,
    normalize_key,
)

__all__ = [
    "MAX_NAME_LENGTH",
    "Role",
    "User",
    "is_valid_identifier",
    "new_identifier",
    "normalize_key",
]
