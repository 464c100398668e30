import pytest

from fooddispatch.errors import InvalidTransition, NoDriverAvailable, OrderNotFound
from fooddispatch.models import AssignmentStatus, DriverStatus, OrderItem, OrderStatus


def test_reference_scenario(service, customer, restaurant, near_driver, far_driver):
    order = service.place_order(customer, restaurant, [
        OrderItem("Margherita Pizza", 2, 300),
        OrderItem("Garlic Bread", 1, 150),
    ])
    assert order.order_id == "ORD0001"
    assert order.status == OrderStatus.PLACED

    assignment = service.accept_order(order.order_id)
    assert order.status == OrderStatus.ACCEPTED
    assert assignment.driver is near_driver
    assert assignment.assignment_id == "DEL0001"

    service.start_preparation(order.order_id)
    service.mark_ready(order.order_id)
    service.pick_up(order.order_id)
    assert assignment.status == AssignmentStatus.PICKED_UP
    service.deliver(order.order_id)

    assert order.status == OrderStatus.DELIVERED
    assert assignment.status == AssignmentStatus.DELIVERED
    assert near_driver.status == DriverStatus.AVAILABLE
    assert far_driver.status == DriverStatus.AVAILABLE

    with pytest.raises(InvalidTransition):
        service.cancel_order(order.order_id)


def test_cancel_penalties(service, customer, restaurant, items, near_driver):
    free = service.place_order(customer, restaurant, items)
    service.accept_order(free.order_id)
    assert service.cancel_order(free.order_id) == 0
    assert near_driver.status == DriverStatus.AVAILABLE

    charged = service.place_order(customer, restaurant, items)
    service.accept_order(charged.order_id)
    service.start_preparation(charged.order_id)
    assert service.cancel_order(charged.order_id) == 50
    assert near_driver.status == DriverStatus.AVAILABLE
    assert charged.attempts[0].status == AssignmentStatus.CANCELLED


def test_accept_without_dispatch(service, customer, restaurant, items):
    order = service.place_order(customer, restaurant, items)
    assert service.accept_order(order.order_id, dispatch=False) is None
    assert order.assignment is None
    assignment = service.dispatch_order(order.order_id, max_attempts=1)
    assert order.assignment is assignment


def test_no_driver_leaves_order_accepted(service, customer, restaurant, items, pool):
    pool.set_offline("D001")
    pool.set_offline("D002")
    order = service.place_order(customer, restaurant, items)
    with pytest.raises(NoDriverAvailable):
        service.accept_order(order.order_id)
    assert order.status == OrderStatus.ACCEPTED

    pool.set_online("D002")
    assert service.dispatch_order(order.order_id).driver.driver_id == "D002"


def test_pickup_and_delivery_without_driver(service, customer, restaurant, items):
    order = service.place_order(customer, restaurant, items)
    service.accept_order(order.order_id, dispatch=False)
    service.start_preparation(order.order_id)
    service.mark_ready(order.order_id)
    service.pick_up(order.order_id)
    service.deliver(order.order_id)
    assert order.status == OrderStatus.DELIVERED


def test_unknown_order(service):
    with pytest.raises(OrderNotFound) as exc:
        service.get_order("ORD9999")
    assert "ORD9999" in str(exc.value)
    with pytest.raises(KeyError):
        service.cancel_order("ORD9999")


def test_list_orders_keeps_history(service, customer, restaurant, items):
    first = service.place_order(customer, restaurant, items)
    second = service.place_order(customer, restaurant, items)
    service.accept_order(first.order_id, dispatch=False)
    service.cancel_order(first.order_id)
    assert service.list_orders() == [first, second]
    assert [o.order_id for o in service.list_orders()] == ["ORD0001", "ORD0002"]
