"""Shared Kernel module.

This module contains foundational components that are explicitly shared across
bounded contexts. Changes to this module affect every context and should be
carefully coordinated.
"""

from shared_kernel.cancellation import CancellationToken

__all__ = ["CancellationToken"]
