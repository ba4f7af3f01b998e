"""Cooperative cancellation for store operations.

A token is handed to an operation as its last argument. The operation checks
it once, on entry; after the first statement has been issued the operation
runs to completion.
"""

from __future__ import annotations

import asyncio


class CancellationToken:
    """Signal that the caller no longer wants the result of an operation."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self._cancelled = True

    @property
    def is_cancellation_requested(self) -> bool:
        """Whether cancel() has been called."""
        return self._cancelled

    def raise_if_cancellation_requested(self) -> None:
        """Raise asyncio.CancelledError if cancellation was requested."""
        if self._cancelled:
            raise asyncio.CancelledError("Operation was cancelled by the caller")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"
