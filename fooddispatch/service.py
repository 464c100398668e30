# fooddispatch/service.py
"""
Order Service: id-based operations over orders for a host application.

The service is an explicitly constructed component. Whoever composes the
system creates one DriverPool, one DispatchEngine and one OrderService and
hands them to its adapters.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional

from . import config
from .assignment import DeliveryAssignment
from .dispatch import DispatchEngine
from .errors import InvalidTransition, OrderNotFound
from .models import Customer, OrderItem, Restaurant
from .notifications import EventNotifier, NullNotifier
from .order import Order
from .utils import IdSequence

logger = logging.getLogger(__name__)


class OrderService:
    """
    Args:
        dispatcher: Engine used to bind drivers to accepted orders
        notifier: Handed to every order placed through the service
    """

    def __init__(self, dispatcher: DispatchEngine, notifier: Optional[EventNotifier] = None) -> None:
        self.dispatcher = dispatcher
        self.notifier: EventNotifier = notifier or NullNotifier()
        self._orders: Dict[str, Order] = {}
        self._lock = threading.Lock()
        self._order_ids = IdSequence(config.ORDER_ID_PREFIX)

    def place_order(self, customer: Customer, restaurant: Restaurant, items: Iterable[OrderItem]) -> Order:
        order = Order(self._order_ids.next(), customer, restaurant, list(items), notifier=self.notifier)
        with self._lock:
            self._orders[order.order_id] = order
        logger.info(f"Order {order.order_id} placed by {customer.name} at {restaurant.name}, "
                    f"total {order.total_amount:.2f}")
        return order

    def get_order(self, order_id: str) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def list_orders(self) -> List[Order]:
        with self._lock:
            return list(self._orders.values())

    def accept_order(self, order_id: str, dispatch: bool = True) -> Optional[DeliveryAssignment]:
        """
        Restaurant accepts the order, then a driver is dispatched.

        Returns:
            The bound assignment, or None when ``dispatch`` is False

        Raises:
            NoDriverAvailable: the order stays ACCEPTED and can be re-dispatched
        """
        order = self.get_order(order_id)
        order.accept()
        if not dispatch:
            return None
        return self.dispatcher.assign(order)

    def dispatch_order(self, order_id: str, max_attempts: Optional[int] = None) -> DeliveryAssignment:
        return self.dispatcher.assign(self.get_order(order_id), max_attempts)

    def start_preparation(self, order_id: str) -> None:
        self.get_order(order_id).start_preparation()

    def mark_ready(self, order_id: str) -> None:
        self.get_order(order_id).mark_ready()

    def pick_up(self, order_id: str) -> None:
        """Driver pickup; goes through the assignment when a driver is bound."""
        order = self.get_order(order_id)
        assignment = order.assignment
        if assignment is None:
            order.pick_up()
        else:
            assignment.mark_picked_up()

    def deliver(self, order_id: str) -> None:
        order = self.get_order(order_id)
        assignment = order.assignment
        if assignment is None:
            order.deliver()
        else:
            assignment.mark_delivered()

    def cancel_order(self, order_id: str) -> float:
        """
        Returns:
            The cancellation penalty

        Raises:
            InvalidTransition: once the order was picked up, delivered or cancelled
        """
        order = self.get_order(order_id)
        try:
            penalty = order.cancel()
        except InvalidTransition as e:
            logger.warning(f"Cannot cancel order {order_id}: {e}")
            raise

        if penalty > 0:
            logger.info(f"Order {order_id} cancelled with penalty {penalty:.2f}")
        else:
            logger.info(f"Order {order_id} cancelled (no penalty)")
        return penalty
