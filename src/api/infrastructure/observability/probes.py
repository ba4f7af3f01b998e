"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class ConnectionProbe(Protocol):
    """Domain probe for database connection observability.

    This probe captures domain-significant events related to pooled
    connection checkouts without exposing logging implementation details.
    """

    def connection_acquired(self) -> None:
        """Record that a connection was checked out of the pool."""
        ...

    def connection_released(self) -> None:
        """Record that a connection was returned to the pool."""
        ...

    def connection_failed(self, error: Exception) -> None:
        """Record that a connection could not be checked out."""
        ...

    def transaction_rolled_back(self, error: BaseException) -> None:
        """Record that a transaction was rolled back because of an error."""
        ...

    def pool_closed(self) -> None:
        """Record that the connection pool was closed."""
        ...

    def with_context(self, context: ObservationContext) -> ConnectionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConnectionProbe:
    """Default implementation of ConnectionProbe using structlog.

    Supports observation context for including request-scoped metadata
    with all log events.
    """

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

    def with_context(self, context: ObservationContext) -> DefaultConnectionProbe:
        """Create a new probe with observation context bound."""
        return DefaultConnectionProbe(logger=self._logger, context=context)

    def connection_acquired(self) -> None:
        """Record that a connection was checked out of the pool."""
        self._logger.debug(
            "connection_acquired_from_pool",
            **self._get_context_kwargs(),
        )

    def connection_released(self) -> None:
        """Record that a connection was returned to the pool."""
        self._logger.debug(
            "connection_returned_to_pool",
            **self._get_context_kwargs(),
        )

    def connection_failed(self, error: Exception) -> None:
        """Record that a connection could not be checked out."""
        self._logger.error(
            "database_connection_failed",
            error=str(error),
            **self._get_context_kwargs(),
        )

    def transaction_rolled_back(self, error: BaseException) -> None:
        """Record that a transaction was rolled back because of an error."""
        self._logger.warning(
            "transaction_rolled_back",
            error_type=type(error).__name__,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def pool_closed(self) -> None:
        """Record that the connection pool was closed."""
        self._logger.info(
            "connection_pool_closed",
            **self._get_context_kwargs(),
        )
