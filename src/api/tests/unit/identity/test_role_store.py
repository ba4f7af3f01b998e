"""Unit tests for RoleStore against an in-memory SQLite database."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from identity.domain.entities import Role
from identity.domain.value_objects import new_identifier, normalize_key
from identity.infrastructure.role_store import RoleStore
from identity.ports import (
    Err,
    ErrorKind,
    IdentityErrorCode,
    IRoleStore,
    Ok,
    StaleRecordError,
)
from shared_kernel.cancellation import CancellationToken


@pytest.fixture
def store(connections, mock_role_probe) -> RoleStore:
    """Provide a role store over the test database."""
    return RoleStore(connections, probe=mock_role_probe)


async def _create(store: RoleStore, name: str) -> Role:
    role = Role.new(name)
    result = await store.create(role)
    assert result.succeeded
    return role


class TestProtocolCompliance:
    """Tests for protocol compliance."""

    def test_implements_protocol(self, connections):
        """RoleStore should implement IRoleStore protocol."""
        assert isinstance(RoleStore(connections), IRoleStore)


class TestCreate:
    """Tests for creating roles."""

    @pytest.mark.asyncio
    async def test_creates_role(self, store, mock_role_probe):
        """Should insert the role and report success."""
        role = Role.new("Admin")

        result = await store.create(role)

        assert result == Ok(None)
        found = (await store.find_by_id(role.id)).unwrap()
        assert found is not None
        assert found.name == "Admin"
        assert found.normalized_name == "ADMIN"
        assert found.concurrency_stamp == role.concurrency_stamp
        mock_role_probe.role_created.assert_called_once_with(role.id, "Admin")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", None, "x" * 257])
    async def test_rejects_invalid_name_without_io(self, name, mock_role_probe):
        """Invalid names are refused before any connection is checked out."""
        unreachable = MagicMock()
        unreachable.transaction.side_effect = AssertionError("database touched")
        store = RoleStore(unreachable, probe=mock_role_probe)

        result = await store.create(Role(id=new_identifier(), name=name))

        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.PRECONDITION
        assert result.error.code == IdentityErrorCode.INVALID_ROLE_NAME
        unreachable.transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_accepts_name_of_maximum_length(self, store):
        """A 256 character name is valid."""
        role = Role.new("x" * 256)

        assert (await store.create(role)).succeeded

    @pytest.mark.asyncio
    async def test_duplicate_names_are_allowed(self, store):
        """Two roles may share a normalized name at this layer."""
        first = await _create(store, "Editors")
        second = await _create(store, "editors")

        listed = (await store.list_all()).unwrap()

        assert {r.id for r in listed} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test_rejects_missing_role(self, store):
        """A None role is an argument error."""
        result = await store.create(None)

        assert result.error.code == IdentityErrorCode.INVALID_ARGUMENT
        assert result.error.kind is ErrorKind.PRECONDITION


class TestDelete:
    """Tests for deleting roles."""

    @pytest.mark.asyncio
    async def test_deletes_role(self, store, mock_role_probe):
        """Deleted roles can no longer be found."""
        role = await _create(store, "Admin")

        result = await store.delete(role)

        assert result.succeeded
        assert (await store.find_by_id(role.id)).unwrap() is None
        mock_role_probe.role_deleted.assert_called_once_with(role.id)

    @pytest.mark.asyncio
    async def test_missing_role_is_not_found(self, store):
        """Deleting a role that is not stored reports RoleNotFound."""
        result = await store.delete(Role.new("Ghost"))

        assert result.error.kind is ErrorKind.NOT_FOUND
        assert result.error.code == IdentityErrorCode.ROLE_NOT_FOUND


class TestFind:
    """Tests for role lookups."""

    @pytest.mark.asyncio
    async def test_find_by_id_returns_none_when_absent(self, store):
        """Lookups that match nothing succeed with None."""
        result = await store.find_by_id(new_identifier())

        assert result == Ok(None)

    @pytest.mark.asyncio
    async def test_find_by_name_uses_normalized_key(self, store):
        """Roles are found by their normalized name."""
        role = await _create(store, "Auditors")

        found = (await store.find_by_name(normalize_key("auditors"))).unwrap()

        assert found == role

    @pytest.mark.asyncio
    async def test_find_by_name_picks_lowest_id_among_duplicates(self, store):
        """With duplicate names the lookup is deterministic."""
        roles = [await _create(store, "Ops") for _ in range(3)]

        found = (await store.find_by_name("OPS")).unwrap()

        assert found.id == min(r.id for r in roles)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["", "  ", None])
    async def test_blank_arguments_are_rejected(self, store, value):
        """Blank ids and names are argument errors."""
        by_id = await store.find_by_id(value)
        by_name = await store.find_by_name(value)

        for result in (by_id, by_name):
            assert result.error.kind is ErrorKind.PRECONDITION
            assert result.error.code == IdentityErrorCode.INVALID_ARGUMENT


class TestProjections:
    """Tests for single-column reads."""

    @pytest.mark.asyncio
    async def test_reads_stored_values(self, store):
        """Getters read the database, not the in-memory role."""
        role = await _create(store, "Admin")
        stale_copy = Role(id=role.id, name="changed", normalized_name="CHANGED")

        assert (await store.get_name(stale_copy)).unwrap() == "Admin"
        assert (await store.get_normalized_name(stale_copy)).unwrap() == "ADMIN"

    @pytest.mark.asyncio
    async def test_get_id_looks_up_by_normalized_name(self, store):
        """get_id resolves the id from the normalized name."""
        role = await _create(store, "Admin")
        probe = Role(id="unknown", normalized_name="ADMIN")

        assert (await store.get_id(probe)).unwrap() == role.id

    @pytest.mark.asyncio
    async def test_projection_of_unknown_role_is_none(self, store):
        """An unknown role projects to None."""
        assert (await store.get_name(Role.new("Nobody"))).unwrap() is None


class TestSetters:
    """Tests for setters that persist and mirror values."""

    @pytest.mark.asyncio
    async def test_set_name_persists_and_mirrors(self, store):
        """set_name updates the row and the caller's role."""
        role = await _create(store, "Admin")

        result = await store.set_name(role, "Administrators")

        assert result.succeeded
        assert role.name == "Administrators"
        assert (await store.find_by_id(role.id)).unwrap().name == "Administrators"

    @pytest.mark.asyncio
    async def test_set_normalized_name_persists_and_mirrors(self, store):
        """set_normalized_name updates the row and the caller's role."""
        role = await _create(store, "Admin")

        result = await store.set_normalized_name(role, "ADMINISTRATORS")

        assert result.succeeded
        assert role.normalized_name == "ADMINISTRATORS"
        assert (await store.find_by_name("ADMINISTRATORS")).unwrap() == role

    @pytest.mark.asyncio
    async def test_set_name_on_missing_role_is_stale(self, store, mock_role_probe):
        """A setter aimed at a vanished role is a stale-state error."""
        role = Role.new("Ghost")

        result = await store.set_name(role, "Other")

        assert result.error.kind is ErrorKind.STALE
        assert result.error.code == IdentityErrorCode.ROLE_NOT_FOUND
        assert role.id in result.error.description
        assert role.name == "Ghost"
        mock_role_probe.stale_role.assert_called_once_with(role.id, "set_name")

    @pytest.mark.asyncio
    async def test_blank_values_are_rejected(self, store):
        """Blank names are refused."""
        role = await _create(store, "Admin")

        assert (await store.set_name(role, " ")).error.code == (
            IdentityErrorCode.INVALID_ROLE_NAME
        )
        assert (await store.set_normalized_name(role, "")).error.code == (
            IdentityErrorCode.INVALID_ARGUMENT
        )
        assert role.name == "Admin"

    @pytest.mark.asyncio
    async def test_set_name_rejects_overlong_name(self, store, mock_role_probe):
        """A name over 256 characters is refused and nothing is written."""
        role = await _create(store, "Admin")

        result = await store.set_name(role, "x" * 257)

        assert result.error.kind is ErrorKind.PRECONDITION
        assert result.error.code == IdentityErrorCode.INVALID_ROLE_NAME
        assert role.name == "Admin"
        assert (await store.find_by_id(role.id)).unwrap().name == "Admin"
        mock_role_probe.role_updated.assert_not_called()


class TestUpdate:
    """Tests for full role updates."""

    @pytest.mark.asyncio
    async def test_updates_all_columns(self, store):
        """update writes name, normalized name and concurrency stamp."""
        role = await _create(store, "Admin")
        role.name = "Root"
        role.normalized_name = "ROOT"
        role.concurrency_stamp = "stamp-2"

        assert (await store.update(role)).succeeded

        stored = (await store.find_by_id(role.id)).unwrap()
        assert (stored.name, stored.normalized_name, stored.concurrency_stamp) == (
            "Root",
            "ROOT",
            "stamp-2",
        )

    @pytest.mark.asyncio
    async def test_update_of_missing_role_is_stale(self, store):
        """Updating a vanished role names its id and unwraps to StaleRecordError."""
        role = Role.new("Ghost")

        result = await store.update(role)

        assert result.error.kind is ErrorKind.STALE
        assert result.error.description == f"No role found with ID {role.id}."
        with pytest.raises(StaleRecordError) as exc_info:
            result.unwrap()
        assert exc_info.value.code == IdentityErrorCode.ROLE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_rejects_overlong_name(self, store):
        """update refuses a name over 256 characters and keeps the stored row."""
        role = await _create(store, "Admin")
        role.name = "x" * 257

        result = await store.update(role)

        assert result.error.kind is ErrorKind.PRECONDITION
        assert result.error.code == IdentityErrorCode.INVALID_ROLE_NAME
        assert (await store.find_by_id(role.id)).unwrap().name == "Admin"


class TestListAll:
    """Tests for listing roles."""

    @pytest.mark.asyncio
    async def test_empty_table(self, store):
        """An empty table lists as an empty list."""
        assert (await store.list_all()).unwrap() == []

    @pytest.mark.asyncio
    async def test_lists_in_id_order(self, store, mock_role_probe):
        """Roles come back ordered by id."""
        roles = [await _create(store, f"Role {i}") for i in range(3)]

        listed = (await store.list_all()).unwrap()

        assert [r.id for r in listed] == sorted(r.id for r in roles)
        mock_role_probe.roles_listed.assert_called_once_with(3)


class TestLifecycle:
    """Tests for cancellation and disposal."""

    @pytest.mark.asyncio
    async def test_cancelled_token_raises_before_io(self, store):
        """A cancelled token aborts the operation on entry."""
        token = CancellationToken()
        token.cancel()
        role = Role.new("Admin")

        with pytest.raises(asyncio.CancelledError):
            await store.create(role, cancellation=token)

        assert (await store.find_by_id(role.id)).unwrap() is None

    @pytest.mark.asyncio
    async def test_live_token_does_not_interfere(self, store):
        """An uncancelled token lets the operation run."""
        role = Role.new("Admin")

        result = await store.create(role, cancellation=CancellationToken())

        assert result.succeeded

    @pytest.mark.asyncio
    async def test_disposed_store_refuses_operations(self, store):
        """Operations after dispose() return StoreDisposed."""
        await store.dispose()

        result = await store.list_all()

        assert store.is_disposed
        assert result.error.kind is ErrorKind.PRECONDITION
        assert result.error.code == IdentityErrorCode.STORE_DISPOSED

    @pytest.mark.asyncio
    async def test_dispose_leaves_shared_engine_running(self, connections):
        """A store that does not own the engine leaves it usable."""
        async with RoleStore(connections) as first:
            await _create(first, "Admin")

        second = RoleStore(connections)
        assert len((await second.list_all()).unwrap()) == 1

    @pytest.mark.asyncio
    async def test_owning_store_disposes_engine(self):
        """A store built with owns_engine=True disposes the pool."""
        factory = MagicMock()
        factory.dispose = AsyncMock()

        store = RoleStore(factory, owns_engine=True)
        await store.dispose()
        await store.dispose()

        factory.dispose.assert_awaited_once()
