# fooddispatch/dispatch.py
"""
Dispatch Engine: binds one available driver to an accepted order.

The engine snapshots the pool, lets the configured strategy pick a candidate,
offers the delivery and, if the candidate declines or was grabbed by another
order in the meantime, moves on to the next one. The loop is bounded by
``max_attempts``; there is no automatic retry beyond it.

Failure kinds (all NoDriverAvailable, distinguished by ``reason``):
- POOL_EMPTY: nobody was available when the snapshot was taken
- NO_CANDIDATE: the strategy found nobody usable among the candidates
- CANDIDATES_EXHAUSTED: every candidate rejected
- ATTEMPTS_EXHAUSTED: the attempt budget ran out
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from . import config
from .assignment import DeliveryAssignment
from .errors import AlreadyBound, InvalidTransition, NoDriverAvailable, NoDriverReason
from .models import Driver
from .notifications import EventKind, EventNotifier, NullNotifier
from .order import Order
from .pool import DriverPool
from .strategies import AssignmentStrategy, NearestDriverStrategy
from .utils import IdSequence

logger = logging.getLogger(__name__)

Responder = Callable[[Driver, DeliveryAssignment], bool]
"""The driver's answer to a delivery offer: True to accept, False to decline."""


def always_accept(driver: Driver, assignment: DeliveryAssignment) -> bool:
    return True


class DispatchEngine:
    """
    Orchestrates strategy selection and the bounded accept/retry loop.

    Args:
        pool: Registry of drivers
        strategy: Selection policy (nearest driver by default)
        notifier: Receives DRIVER_ASSIGNED / DRIVER_RELEASED events
        responder: Asks the driver whether they take the delivery
        max_attempts: Default accept-attempt budget per ``assign`` call
    """

    def __init__(
        self,
        pool: DriverPool,
        strategy: Optional[AssignmentStrategy] = None,
        notifier: Optional[EventNotifier] = None,
        responder: Optional[Responder] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.pool = pool
        self.strategy: AssignmentStrategy = strategy or NearestDriverStrategy()
        self.notifier: EventNotifier = notifier or NullNotifier()
        self.responder: Responder = responder or always_accept
        self.max_attempts = max_attempts
        self._assignment_ids = IdSequence(config.ASSIGNMENT_ID_PREFIX)

    def set_strategy(self, strategy: AssignmentStrategy) -> None:
        self.strategy = strategy
        logger.info(f"Strategy changed to: {strategy.name}")

    def assign(self, order: Order, max_attempts: Optional[int] = None) -> DeliveryAssignment:
        """
        Bind a driver to ``order``.

        Args:
            order: An ACCEPTED, PREPARING or READY order without a driver
            max_attempts: Accept-attempt budget (engine default if None)

        Returns:
            The accepted, bound DeliveryAssignment

        Raises:
            NoDriverAvailable: no candidate accepted within the budget
            InvalidTransition: the order cannot take a driver now, or was
                cancelled while the offer was outstanding
            AlreadyBound: the order already has an active assignment
        """
        budget = self._resolve_budget(max_attempts)
        order.ensure_dispatchable()
        logger.info(f"Assigning driver for order {order.order_id} (budget {budget})")

        candidates: List[Driver] = self.pool.list_available()
        if not candidates:
            raise self._no_driver(order, NoDriverReason.POOL_EMPTY, 0)

        attempts = 0
        while attempts < budget:
            if not candidates:
                raise self._no_driver(order, NoDriverReason.CANDIDATES_EXHAUSTED, attempts)

            driver = self.strategy.select_driver(order, candidates)
            if driver is None:
                raise self._no_driver(order, NoDriverReason.NO_CANDIDATE, attempts)

            assignment = DeliveryAssignment(self._assignment_ids.next(), order, driver)
            order.record_attempt(assignment)
            attempts += 1

            if assignment.try_accept(self._ask(driver, assignment)):
                self._bind(order, assignment)
                return assignment

            candidates = [c for c in candidates if c is not driver]

        raise self._no_driver(order, NoDriverReason.ATTEMPTS_EXHAUSTED, attempts)

    def _resolve_budget(self, max_attempts: Optional[int]) -> int:
        if max_attempts is None:
            max_attempts = self.max_attempts
        if max_attempts is None:
            max_attempts = config.DEFAULT_MAX_ATTEMPTS
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        return max_attempts

    def _ask(self, driver: Driver, assignment: DeliveryAssignment) -> bool:
        try:
            return bool(self.responder(driver, assignment))
        except Exception:
            # Leave no dangling ASSIGNED record behind
            assignment.reject()
            raise

    def _bind(self, order: Order, assignment: DeliveryAssignment) -> None:
        driver = assignment.driver
        try:
            order.bind_assignment(assignment)
        except (InvalidTransition, AlreadyBound) as e:
            logger.warning(f"Releasing driver {driver.driver_id}: {e}")
            self.notifier.notify(EventKind.DRIVER_RELEASED, driver.driver_id, {
                "order_id": order.order_id,
                "assignment_id": assignment.assignment_id,
                "reason": "dispatch aborted",
            })
            raise

        logger.info(f"Driver {driver.driver_id} bound to order {order.order_id} via {assignment.assignment_id}")
        self.notifier.notify(EventKind.DRIVER_ASSIGNED, driver.driver_id, {
            "order_id": order.order_id,
            "assignment_id": assignment.assignment_id,
            "restaurant_id": order.restaurant.restaurant_id,
            "restaurant_name": order.restaurant.name,
        })

    def _no_driver(self, order: Order, reason: NoDriverReason, attempts: int) -> NoDriverAvailable:
        logger.warning(f"No driver for order {order.order_id}: {reason.value} after {attempts} attempt(s)")
        return NoDriverAvailable(order.order_id, reason, attempts)
