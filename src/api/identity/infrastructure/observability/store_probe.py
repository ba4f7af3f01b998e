"""Domain probes for identity store operations.

Following Domain-Oriented Observability patterns, these probes capture
domain-significant events related to role and user persistence. Database
error detail is recorded here and never in the results returned to callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class RoleStoreProbe(Protocol):
    """Domain probe for role store operations."""

    def role_created(self, role_id: str, name: str | None) -> None:
        """Record that a role was inserted."""
        ...

    def role_deleted(self, role_id: str) -> None:
        """Record that a role was deleted."""
        ...

    def role_retrieved(self, role_id: str) -> None:
        """Record that a role was read."""
        ...

    def role_not_found(self, lookup: str) -> None:
        """Record that no role matched a lookup."""
        ...

    def role_updated(self, role_id: str, fields: list[str]) -> None:
        """Record that columns of a role were updated."""
        ...

    def stale_role(self, role_id: str, operation: str) -> None:
        """Record that a role the caller held no longer exists."""
        ...

    def roles_listed(self, count: int) -> None:
        """Record that all roles were listed."""
        ...

    def operation_rejected(self, operation: str, code: str) -> None:
        """Record that an operation was refused before reaching the database."""
        ...

    def database_error(self, operation: str, error: Exception) -> None:
        """Record that the database failed an operation."""
        ...

    def with_context(self, context: ObservationContext) -> RoleStoreProbe:
        """Create a new probe with observation context bound."""
        ...


class UserStoreProbe(Protocol):
    """Domain probe for user store operations."""

    def user_created(self, user_id: str, user_name: str | None) -> None:
        """Record that a user was inserted."""
        ...

    def duplicate_user(self, user_id: str) -> None:
        """Record that a user name or email collision blocked an insert."""
        ...

    def user_deleted(self, user_id: str) -> None:
        """Record that a user was deleted."""
        ...

    def user_retrieved(self, user_id: str) -> None:
        """Record that a user was read."""
        ...

    def user_not_found(self, lookup: str) -> None:
        """Record that no user matched a lookup."""
        ...

    def user_updated(self, user_id: str, fields: list[str]) -> None:
        """Record that columns of a user were updated."""
        ...

    def users_listed(self, count: int) -> None:
        """Record that all users were listed."""
        ...

    def operation_rejected(self, operation: str, code: str) -> None:
        """Record that an operation was refused before reaching the database."""
        ...

    def database_error(self, operation: str, error: Exception) -> None:
        """Record that the database failed an operation."""
        ...

    def with_context(self, context: ObservationContext) -> UserStoreProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultRoleStoreProbe:
    """Default implementation of RoleStoreProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultRoleStoreProbe:
        """Create a new probe with observation context bound."""
        return DefaultRoleStoreProbe(logger=self._logger, context=context)

    def role_created(self, role_id: str, name: str | None) -> None:
        """Record that a role was inserted."""
        self._logger.info(
            "role_created",
            role_id=role_id,
            name=name,
            **self._get_context_kwargs(),
        )

    def role_deleted(self, role_id: str) -> None:
        """Record that a role was deleted."""
        self._logger.info(
            "role_deleted",
            role_id=role_id,
            **self._get_context_kwargs(),
        )

    def role_retrieved(self, role_id: str) -> None:
        """Record that a role was read."""
        self._logger.debug(
            "role_retrieved",
            role_id=role_id,
            **self._get_context_kwargs(),
        )

    def role_not_found(self, lookup: str) -> None:
        """Record that no role matched a lookup."""
        self._logger.debug(
            "role_not_found",
            lookup=lookup,
            **self._get_context_kwargs(),
        )

    def role_updated(self, role_id: str, fields: list[str]) -> None:
        """Record that columns of a role were updated."""
        self._logger.info(
            "role_updated",
            role_id=role_id,
            fields=fields,
            **self._get_context_kwargs(),
        )

    def stale_role(self, role_id: str, operation: str) -> None:
        """Record that a role the caller held no longer exists."""
        self._logger.error(
            "stale_role",
            role_id=role_id,
            store_operation=operation,
            **self._get_context_kwargs(),
        )

    def roles_listed(self, count: int) -> None:
        """Record that all roles were listed."""
        self._logger.debug(
            "roles_listed",
            count=count,
            **self._get_context_kwargs(),
        )

    def operation_rejected(self, operation: str, code: str) -> None:
        """Record that an operation was refused before reaching the database."""
        self._logger.warning(
            "role_store_operation_rejected",
            store_operation=operation,
            code=code,
            **self._get_context_kwargs(),
        )

    def database_error(self, operation: str, error: Exception) -> None:
        """Record that the database failed an operation."""
        self._logger.error(
            "role_store_database_error",
            store_operation=operation,
            error_type=type(error).__name__,
            error=str(error),
            **self._get_context_kwargs(),
        )


class DefaultUserStoreProbe:
    """Default implementation of UserStoreProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultUserStoreProbe:
        """Create a new probe with observation context bound."""
        return DefaultUserStoreProbe(logger=self._logger, context=context)

    def user_created(self, user_id: str, user_name: str | None) -> None:
        """Record that a user was inserted."""
        self._logger.info(
            "user_created",
            user_id=user_id,
            user_name=user_name,
            **self._get_context_kwargs(),
        )

    def duplicate_user(self, user_id: str) -> None:
        """Record that a user name or email collision blocked an insert."""
        self._logger.warning(
            "duplicate_user",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def user_deleted(self, user_id: str) -> None:
        """Record that a user was deleted."""
        self._logger.info(
            "user_deleted",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def user_retrieved(self, user_id: str) -> None:
        """Record that a user was read."""
        self._logger.debug(
            "user_retrieved",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def user_not_found(self, lookup: str) -> None:
        """Record that no user matched a lookup."""
        self._logger.debug(
            "user_not_found",
            lookup=lookup,
            **self._get_context_kwargs(),
        )

    def user_updated(self, user_id: str, fields: list[str]) -> None:
        """Record that columns of a user were updated."""
        self._logger.info(
            "user_updated",
            user_id=user_id,
            fields=fields,
            **self._get_context_kwargs(),
        )

    def users_listed(self, count: int) -> None:
        """Record that all users were listed."""
        self._logger.debug(
            "users_listed",
            count=count,
            **self._get_context_kwargs(),
        )

    def operation_rejected(self, operation: str, code: str) -> None:
        """Record that an operation was refused before reaching the database."""
        self._logger.warning(
            "user_store_operation_rejected",
            store_operation=operation,
            code=code,
            **self._get_context_kwargs(),
        )

    def database_error(self, operation: str, error: Exception) -> None:
        """Record that the database failed an operation."""
        self._logger.error(
            "user_store_database_error",
            store_operation=operation,
            error_type=type(error).__name__,
            error=str(error),
            **self._get_context_kwargs(),
        )
