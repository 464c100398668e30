# fooddispatch/assignment.py
"""
DeliveryAssignment: the record of one driver-to-order binding attempt.

    ASSIGNED --try_accept--> ACCEPTED --pick up--> PICKED_UP --deliver--> DELIVERED
        \\                       \\
         +--> REJECTED            +--> CANCELLED (order cancelled before pickup)

A rejected assignment is never reused; dispatch creates a new one for the
next candidate. Transitions past ACCEPTED are driven through the bound order
so the order, the assignment and the driver always move together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Dict, Optional

from . import utils
from .errors import InvalidTransition
from .models import AssignmentStatus, Driver

if TYPE_CHECKING:
    from .order import Order

logger = logging.getLogger(__name__)

_TIMESTAMP_FIELDS: Dict[AssignmentStatus, str] = {
    AssignmentStatus.ACCEPTED: "accepted_at",
    AssignmentStatus.REJECTED: "rejected_at",
    AssignmentStatus.PICKED_UP: "picked_up_at",
    AssignmentStatus.DELIVERED: "delivered_at",
    AssignmentStatus.CANCELLED: "cancelled_at",
}


@dataclass(eq=False)
class DeliveryAssignment:
    """
    Binds one Order to one Driver.

    Attributes:
        assignment_id: Unique identifier (DEL0001, ...)
        order: The order being delivered
        driver: The candidate driver, referenced not owned
        status: Current assignment status
        assigned_at ... cancelled_at: When each status was reached
    """
    assignment_id: str
    order: Order = field(repr=False)
    driver: Driver = field(repr=False)
    status: AssignmentStatus = field(default=AssignmentStatus.ASSIGNED, init=False)
    assigned_at: datetime = field(default_factory=utils.utc_now, init=False)
    accepted_at: Optional[datetime] = field(default=None, init=False)
    rejected_at: Optional[datetime] = field(default=None, init=False)
    picked_up_at: Optional[datetime] = field(default=None, init=False)
    delivered_at: Optional[datetime] = field(default=None, init=False)
    cancelled_at: Optional[datetime] = field(default=None, init=False)

    @property
    def is_active(self) -> bool:
        """Accepted and not yet delivered or abandoned: the driver is BUSY for it."""
        return self.status in (AssignmentStatus.ACCEPTED, AssignmentStatus.PICKED_UP)

    def try_accept(self, willing: bool = True) -> bool:
        """
        Driver-side accept attempt.

        The availability check and the switch to BUSY happen atomically under
        the driver's lock, so a driver can never be accepted twice.

        Args:
            willing: The driver's own answer; False behaves like a decline

        Returns:
            True if ACCEPTED, False if REJECTED (driver availability untouched)
        """
        self._require(AssignmentStatus.ASSIGNED, "accept")
        if willing and self.driver.reserve(self):
            self._advance(AssignmentStatus.ACCEPTED)
            logger.info(f"Driver {self.driver.driver_id} accepted {self.assignment_id} "
                        f"for order {self.order.order_id}")
            return True

        self._advance(AssignmentStatus.REJECTED)
        reason = "declined" if not willing else f"is {self.driver.status.value}"
        logger.info(f"Driver {self.driver.driver_id} {reason}, {self.assignment_id} rejected")
        return False

    def reject(self) -> None:
        """Explicit decline by the driver."""
        self._require(AssignmentStatus.ASSIGNED, "reject")
        self._advance(AssignmentStatus.REJECTED)

    def mark_picked_up(self) -> None:
        """Driver collected the food; moves the order to PICKED_UP."""
        self._require(AssignmentStatus.ACCEPTED, "mark picked up")
        self._require_bound("mark picked up")
        self.order.pick_up()

    def mark_delivered(self) -> None:
        """Driver handed over the food; delivers the order and frees the driver."""
        self._require(AssignmentStatus.PICKED_UP, "mark delivered")
        self._require_bound("mark delivered")
        self.order.deliver()

    def abandon(self) -> bool:
        """
        Mark the assignment CANCELLED and free its driver.

        Called with the order's lock held.

        Returns:
            True if the driver was released by this call
        """
        if self.status.is_terminal or self.status == AssignmentStatus.PICKED_UP:
            raise InvalidTransition("abandon", self.status, self.assignment_id)
        self._advance(AssignmentStatus.CANCELLED)
        return self.driver.release(self)

    def _advance(self, status: AssignmentStatus, at: Optional[datetime] = None) -> None:
        self.status = status
        setattr(self, _TIMESTAMP_FIELDS[status], at or utils.utc_now())

    def _require(self, expected: AssignmentStatus, operation: str) -> None:
        if self.status != expected:
            raise InvalidTransition(operation, self.status, self.assignment_id)

    def _require_bound(self, operation: str) -> None:
        if self.order.assignment is not self:
            raise InvalidTransition(operation, self.status, self.assignment_id)
