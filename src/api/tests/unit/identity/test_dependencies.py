"""Unit tests for identity dependency providers."""

from unittest.mock import MagicMock

from identity.dependencies import (
    get_role_store,
    get_role_store_probe,
    get_user_store,
    get_user_store_probe,
)
from identity.infrastructure.observability import (
    DefaultRoleStoreProbe,
    DefaultUserStoreProbe,
)
from identity.infrastructure.role_store import RoleStore
from identity.infrastructure.user_store import UserStore
from infrastructure.database.connection import ConnectionFactory
from infrastructure.settings import IdentitySettings


def test_probe_providers_return_default_probes():
    """Probe providers build structlog-backed probes."""
    assert isinstance(get_role_store_probe(), DefaultRoleStoreProbe)
    assert isinstance(get_user_store_probe(), DefaultUserStoreProbe)


def test_get_role_store():
    """get_role_store builds a store over the shared factory."""
    factory = MagicMock(spec=ConnectionFactory)

    store = get_role_store(connections=factory, probe=get_role_store_probe())

    assert isinstance(store, RoleStore)
    assert store._connections is factory
    assert store._owns_engine is False


def test_get_user_store_applies_settings():
    """get_user_store honors the normalized user name switch."""
    factory = MagicMock(spec=ConnectionFactory)

    default = get_user_store(
        connections=factory,
        probe=get_user_store_probe(),
        settings=IdentitySettings(),
    )
    persisting = get_user_store(
        connections=factory,
        probe=get_user_store_probe(),
        settings=IdentitySettings(persist_normalized_user_name=True),
    )

    assert isinstance(default, UserStore)
    assert default.persists_normalized_user_name is False
    assert persisting.persists_normalized_user_name is True
    assert default is not persisting
