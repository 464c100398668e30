# fooddispatch/order.py
"""
The Order entity and its guarded lifecycle.

Every operation resolves against ``lifecycle.TRANSITIONS`` under the order's
own lock. Side effects on the bound DeliveryAssignment and its Driver are
applied inside the same critical section (lock order: order, then driver).
Events are emitted only after the lock is released, so a notifier never sees
a half-applied transition.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from . import lifecycle, utils
from .errors import AlreadyBound, InvalidTransition
from .lifecycle import OrderOperation, Transition
from .models import AssignmentStatus, Customer, Driver, OrderItem, OrderStatus, Restaurant
from .notifications import EventKind, EventNotifier, NullNotifier

if TYPE_CHECKING:
    from .assignment import DeliveryAssignment

logger = logging.getLogger(__name__)

# Status the bound assignment must be in for the order operation to proceed
_ASSIGNMENT_PRECONDITIONS: Dict[OrderOperation, AssignmentStatus] = {
    OrderOperation.PICK_UP: AssignmentStatus.ACCEPTED,
    OrderOperation.DELIVER: AssignmentStatus.PICKED_UP,
}


@dataclass(eq=False)
class Order:
    """
    A customer's order from one restaurant.

    Attributes:
        order_id: Unique identifier
        customer: Who ordered
        restaurant: Where the food is picked up
        items: Ordered line items (at least one)
        notifier: Receives one event per successful transition

    Lifecycle State:
        status: Current OrderStatus
        created_at / preparation_started_at / cancelled_at: Timestamps
        cancellation_penalty: Fee decided at cancellation, None otherwise
        assignment: The active DeliveryAssignment, if a driver is bound
        attempts: Every assignment created while dispatching this order
        history: (status, timestamp) for every status visited
    """
    order_id: str
    customer: Customer
    restaurant: Restaurant
    items: List[OrderItem]
    notifier: EventNotifier = field(default_factory=NullNotifier, repr=False)

    status: OrderStatus = field(default=OrderStatus.PLACED, init=False)
    created_at: datetime = field(default_factory=utils.utc_now, init=False)
    preparation_started_at: Optional[datetime] = field(default=None, init=False)
    cancelled_at: Optional[datetime] = field(default=None, init=False)
    cancellation_penalty: Optional[float] = field(default=None, init=False)
    assignment: Optional[DeliveryAssignment] = field(default=None, init=False, repr=False)
    attempts: List[DeliveryAssignment] = field(default_factory=list, init=False, repr=False)
    history: List[Tuple[OrderStatus, datetime]] = field(default_factory=list, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError(f"Order {self.order_id} must contain at least one item")
        self.items = list(self.items)
        self.history.append((self.status, self.created_at))

    @property
    def total_amount(self) -> float:
        return sum(item.total_price for item in self.items)

    @property
    def driver(self) -> Optional[Driver]:
        assignment = self.assignment
        return assignment.driver if assignment is not None else None

    @property
    def visited_statuses(self) -> List[OrderStatus]:
        return [status for status, _ in self.history]

    # -------------------------------------------------------------------------
    # Lifecycle operations
    # -------------------------------------------------------------------------

    def accept(self) -> None:
        self._apply(OrderOperation.ACCEPT)

    def start_preparation(self) -> None:
        self._apply(OrderOperation.START_PREPARATION)

    def mark_ready(self) -> None:
        self._apply(OrderOperation.MARK_READY)

    def pick_up(self) -> None:
        """READY -> PICKED_UP; the bound assignment follows."""
        self._apply(OrderOperation.PICK_UP)

    def deliver(self) -> None:
        """PICKED_UP -> DELIVERED; the bound assignment follows and the driver is freed."""
        self._apply(OrderOperation.DELIVER)

    def cancel(self) -> float:
        """
        Cancel the order.

        Returns:
            The cancellation penalty: 0 before preparation, the configured
            fee once preparation started

        Raises:
            InvalidTransition: from PICKED_UP, DELIVERED or CANCELLED
        """
        transition = self._apply(OrderOperation.CANCEL)
        return transition.penalty

    # -------------------------------------------------------------------------
    # Dispatch hooks
    # -------------------------------------------------------------------------

    def ensure_dispatchable(self) -> None:
        """
        Raises:
            InvalidTransition: if a driver cannot be bound in the current status
            AlreadyBound: if a driver is already bound
        """
        with self._lock:
            if self.status not in lifecycle.DISPATCHABLE:
                raise InvalidTransition("dispatch", self.status, self.order_id)
            if self.assignment is not None:
                raise AlreadyBound(self.order_id, self.assignment.assignment_id)

    def record_attempt(self, assignment: DeliveryAssignment) -> None:
        with self._lock:
            self.attempts.append(assignment)

    def bind_assignment(self, assignment: DeliveryAssignment) -> None:
        """
        Make an accepted assignment the order's active one.

        If the order left the dispatchable statuses (typically a cancellation
        that landed while the driver was answering) or another assignment got
        bound first, the given assignment is abandoned and its driver released
        before the error propagates.

        Raises:
            InvalidTransition: order no longer dispatchable
            AlreadyBound: another assignment is already active
        """
        with self._lock:
            if self.status not in lifecycle.DISPATCHABLE:
                assignment.abandon()
                raise InvalidTransition("bind driver", self.status, self.order_id)
            if self.assignment is not None:
                assignment.abandon()
                raise AlreadyBound(self.order_id, self.assignment.assignment_id)
            self.assignment = assignment

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _apply(self, operation: OrderOperation) -> Transition:
        released: Optional[DeliveryAssignment] = None
        with self._lock:
            transition = lifecycle.resolve(self.status, operation, self.order_id)
            assignment = self.assignment
            required = _ASSIGNMENT_PRECONDITIONS.get(operation)
            if assignment is not None and required is not None and assignment.status != required:
                raise InvalidTransition(operation.value, assignment.status, assignment.assignment_id)

            now = utils.utc_now()
            self.status = transition.target
            self.history.append((self.status, now))

            if operation is OrderOperation.START_PREPARATION:
                self.preparation_started_at = now
            elif operation is OrderOperation.CANCEL:
                self.cancellation_penalty = transition.penalty
                self.cancelled_at = now

            if assignment is not None:
                if operation is OrderOperation.PICK_UP:
                    assignment._advance(AssignmentStatus.PICKED_UP, now)
                elif operation is OrderOperation.DELIVER:
                    assignment._advance(AssignmentStatus.DELIVERED, now)
                    if assignment.driver.release(assignment):
                        released = assignment
                elif operation is OrderOperation.CANCEL:
                    if assignment.abandon():
                        released = assignment
                    self.assignment = None

        logger.info(f"Order {self.order_id} status: {transition.source.value} -> {transition.target.value}")
        self.notifier.notify(EventKind.ORDER_STATUS_CHANGED, self.order_id, self._event_payload(transition))
        if released is not None:
            self.notifier.notify(EventKind.DRIVER_RELEASED, released.driver.driver_id, {
                "order_id": self.order_id,
                "assignment_id": released.assignment_id,
                "reason": operation.value,
            })
        return transition

    def _event_payload(self, transition: Transition) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "status": transition.target.value,
            "previous_status": transition.source.value,
            "restaurant_id": self.restaurant.restaurant_id,
            "customer_id": self.customer.customer_id,
        }
        if transition.penalty is not None:
            payload["penalty"] = transition.penalty
        return payload

    def __repr__(self) -> str:
        return f"Order({self.order_id}, {self.status.value})"
