from typing import List

import pytest

from fooddispatch import config
from fooddispatch.dispatch import DispatchEngine
from fooddispatch.models import Coordinate, Customer, Driver, OrderItem, Restaurant
from fooddispatch.notifications import CallbackNotifier, Event
from fooddispatch.order import Order
from fooddispatch.pool import DriverPool
from fooddispatch.service import OrderService

KM_PER_DEGREE_LAT = 6371.0 * 3.141592653589793 / 180.0

RESTAURANT_LOCATION = Coordinate(12.9750, 77.5980)


def north_of(origin: Coordinate, km: float) -> Coordinate:
    """Point ``km`` kilometers due north of ``origin``."""
    return Coordinate(origin.latitude + km / KM_PER_DEGREE_LAT, origin.longitude)


class Recorder:
    """Notifier subscriber that keeps every event."""

    def __init__(self) -> None:
        self.events: List[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def kinds(self):
        return [e.kind for e in self.events]


@pytest.fixture(autouse=True)
def straight_line_distances(monkeypatch):
    monkeypatch.setattr(config, "USE_ROAD_DISTANCE", False)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def notifier(recorder):
    return CallbackNotifier([recorder])


@pytest.fixture
def customer():
    return Customer("C001", "John Doe", "+91-9876543210", Coordinate(12.9716, 77.5946))


@pytest.fixture
def restaurant():
    return Restaurant("R001", "Pizza Paradise", RESTAURANT_LOCATION)


@pytest.fixture
def items():
    return [OrderItem("Margherita Pizza", 2, 300), OrderItem("Coke", 2, 50)]


@pytest.fixture
def make_order(customer, restaurant, items, notifier):
    counter = iter(range(1, 10_000))

    def _make(accepted: bool = True) -> Order:
        order = Order(f"ORD{next(counter):04d}", customer, restaurant, items, notifier=notifier)
        if accepted:
            order.accept()
        return order

    return _make


@pytest.fixture
def near_driver():
    return Driver("D001", "Rajesh Kumar", "+91-9876543211", "KA01AB1234",
                  rating=4.5, location=north_of(RESTAURANT_LOCATION, 0.5))


@pytest.fixture
def far_driver():
    return Driver("D002", "Suresh Patel", "+91-9876543212", "KA01AB5678",
                  rating=4.9, location=north_of(RESTAURANT_LOCATION, 1.2))


@pytest.fixture
def pool(near_driver, far_driver):
    pool = DriverPool()
    pool.register(near_driver)
    pool.register(far_driver)
    return pool


@pytest.fixture
def engine(pool, notifier):
    return DispatchEngine(pool, notifier=notifier)


@pytest.fixture
def service(engine, notifier):
    return OrderService(engine, notifier=notifier)
