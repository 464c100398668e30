# fooddispatch/errors.py
"""
Error kinds raised by the dispatch core.

InvalidTransition and AlreadyBound are programming errors on the caller's
side and are never retried. NoDriverAvailable is the only failure a caller
may reasonably retry (with backoff) at its own level.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class DispatchError(Exception):
    """Base class for every error raised by fooddispatch."""


class InvalidTransition(DispatchError):
    """An operation was attempted from a state that does not allow it."""

    def __init__(self, operation: str, state: Enum, subject_id: Optional[str] = None) -> None:
        self.operation = operation
        self.state = state
        self.subject_id = subject_id
        target = f" on {subject_id}" if subject_id else ""
        super().__init__(f"Cannot {operation}{target} while {state.value}")


class NoDriverReason(Enum):
    """Why a dispatch ended without a driver. Logged, not shown to customers."""
    POOL_EMPTY = "POOL_EMPTY"                  # nobody available at snapshot time
    NO_CANDIDATE = "NO_CANDIDATE"              # strategy found no usable candidate
    CANDIDATES_EXHAUSTED = "CANDIDATES_EXHAUSTED"  # every candidate rejected
    ATTEMPTS_EXHAUSTED = "ATTEMPTS_EXHAUSTED"  # attempt budget used up


class NoDriverAvailable(DispatchError):
    """Dispatch could not bind any driver to the order."""

    def __init__(self, order_id: str, reason: NoDriverReason, attempts: int = 0) -> None:
        self.order_id = order_id
        self.reason = reason
        self.attempts = attempts
        super().__init__(
            f"No driver available for order {order_id} "
            f"({reason.value}, {attempts} attempt(s))"
        )


class AlreadyBound(DispatchError):
    """The order already has an active delivery assignment."""

    def __init__(self, order_id: str, assignment_id: str) -> None:
        self.order_id = order_id
        self.assignment_id = assignment_id
        super().__init__(f"Order {order_id} is already bound to assignment {assignment_id}")


class OrderNotFound(DispatchError, KeyError):
    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")

    def __str__(self) -> str:
        return self.args[0]


class DriverNotFound(DispatchError, KeyError):
    def __init__(self, driver_id: str) -> None:
        self.driver_id = driver_id
        super().__init__(f"Driver not found: {driver_id}")

    def __str__(self) -> str:
        return self.args[0]
