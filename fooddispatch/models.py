# fooddispatch/models.py
"""
Core domain models for the food-delivery dispatch core.

This module defines the fundamental data structures shared by every component:
- Coordinate: An immutable (latitude, longitude) pair with great-circle distance
- Customer / Restaurant: The two parties of an order
- OrderItem: A priced line item
- Driver: A courier with availability, last known location and current assignment

The Order entity and its lifecycle live in ``order.py``; DeliveryAssignment
lives in ``assignment.py``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

from . import utils
from .errors import InvalidTransition

if TYPE_CHECKING:
    from .assignment import DeliveryAssignment


class OrderStatus(Enum):
    """Lifecycle states for an order. DELIVERED and CANCELLED are terminal."""
    PLACED = "PLACED"
    ACCEPTED = "ACCEPTED"
    PREPARING = "PREPARING"
    READY = "READY"
    PICKED_UP = "PICKED_UP"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class DriverStatus(Enum):
    """
    Availability of a driver.

    - AVAILABLE: Can be offered new deliveries
    - BUSY: Bound to exactly one accepted, undelivered assignment
    - OFFLINE: Off shift, never offered deliveries
    """
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"


class AssignmentStatus(Enum):
    """Status lattice of one driver-to-order binding attempt."""
    ASSIGNED = "ASSIGNED"      # Offered, awaiting the driver's answer
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"      # Terminal; the next candidate gets a new assignment
    PICKED_UP = "PICKED_UP"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"    # Abandoned because the order was cancelled

    @property
    def is_terminal(self) -> bool:
        return self in (AssignmentStatus.REJECTED, AssignmentStatus.DELIVERED, AssignmentStatus.CANCELLED)


@dataclass(frozen=True)
class Coordinate:
    """
    Immutable geographic point.

    Attributes:
        latitude: Decimal degrees
        longitude: Decimal degrees
    """
    latitude: float
    longitude: float

    def distance_to(self, other: Coordinate) -> float:
        """Great-circle distance to ``other`` in kilometers."""
        return utils.haversine_distance(self.latitude, self.longitude, other.latitude, other.longitude)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def __repr__(self) -> str:
        return f"Coordinate({self.latitude:.5f}, {self.longitude:.5f})"


@dataclass(frozen=True)
class Customer:
    customer_id: str
    name: str
    phone: str = ""
    location: Optional[Coordinate] = None


@dataclass(frozen=True)
class Restaurant:
    """A pickup point. Dispatch measures driver distance to ``location``."""
    restaurant_id: str
    name: str
    location: Coordinate


@dataclass(frozen=True)
class OrderItem:
    name: str
    quantity: int
    unit_price: float

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {self.quantity}")
        if self.unit_price < 0:
            raise ValueError(f"Unit price must not be negative, got {self.unit_price}")

    @property
    def total_price(self) -> float:
        return self.quantity * self.unit_price


@dataclass(eq=False)
class Driver:
    """
    Represents a courier in the delivery fleet.

    Attributes:
        driver_id: Unique identifier
        name: Display name
        phone: Contact number
        vehicle_number: Registration plate
        rating: Average customer rating (0-5), used by rating-based strategies

    Dynamic State:
        location: Last reported position, None until the first report
        status: Current availability
        current_assignment: The accepted assignment the driver is working on

    ``status`` and ``current_assignment`` only change together, under the
    driver's own lock.
    """
    driver_id: str
    name: str
    phone: str = ""
    vehicle_number: str = ""
    rating: float = 5.0
    location: Optional[Coordinate] = None
    status: DriverStatus = DriverStatus.AVAILABLE
    current_assignment: Optional[DeliveryAssignment] = field(default=None, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    @property
    def is_available(self) -> bool:
        return self.status == DriverStatus.AVAILABLE and self.current_assignment is None

    def update_location(self, location: Coordinate) -> None:
        self.location = location

    def reserve(self, assignment: DeliveryAssignment) -> bool:
        """
        Atomically mark the driver BUSY for ``assignment``.

        Returns:
            False if the driver is not available (busy elsewhere or offline)
        """
        with self._lock:
            if not self.is_available:
                return False
            self.status = DriverStatus.BUSY
            self.current_assignment = assignment
            return True

    def release(self, assignment: DeliveryAssignment) -> bool:
        """
        Free the driver if it is still working on ``assignment``.

        Returns:
            True if the driver went back to AVAILABLE
        """
        with self._lock:
            if self.current_assignment is not assignment:
                return False
            self.current_assignment = None
            self.status = DriverStatus.AVAILABLE
            return True

    def go_offline(self) -> None:
        with self._lock:
            if self.status == DriverStatus.BUSY:
                raise InvalidTransition("go offline", self.status, self.driver_id)
            self.status = DriverStatus.OFFLINE

    def go_online(self) -> None:
        with self._lock:
            if self.status == DriverStatus.OFFLINE:
                self.status = DriverStatus.AVAILABLE

    def __repr__(self) -> str:
        return f"Driver({self.driver_id}, {self.status.value})"
