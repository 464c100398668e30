#!/usr/bin/env python3
# main.py
"""
Command-Line Interface for the food-delivery dispatch core.

Composes a driver pool, a dispatch engine and an order service, then replays
the reference scenarios: a full delivery, free and penalised cancellations,
a cancellation after delivery, and a strategy switch.

Usage:
    python main.py                              # Run with defaults
    python main.py --strategy highest-rated     # Start with another strategy
    python main.py --decline D001               # D001 declines every offer
    python main.py --road-distance --verbose    # OSRM distances, detailed logs

Exit Codes:
    0: Success
    1: Invalid arguments
    2: A scenario failed unexpectedly
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, List, Optional, Sequence

from fooddispatch import config, report
from fooddispatch.dispatch import DispatchEngine
from fooddispatch.errors import DispatchError, InvalidTransition, NoDriverAvailable
from fooddispatch.models import Coordinate, Customer, Driver, OrderItem, Restaurant
from fooddispatch.notifications import CallbackNotifier, Event
from fooddispatch.pool import DriverPool
from fooddispatch.service import OrderService
from fooddispatch.strategies import STRATEGIES, HighestRatedDriverStrategy

# Bangalore demo coordinates; drivers sit ~0.5 km and ~1.2 km north of the restaurant
CUSTOMER_LOCATION = Coordinate(12.9716, 77.5946)
RESTAURANT_LOCATION = Coordinate(12.9750, 77.5980)
DRIVER_LOCATIONS = {
    "D001": Coordinate(12.9794966, 77.5980),
    "D002": Coordinate(12.9857919, 77.5980),
}


def print_header(title: str) -> None:
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def print_event(event: Event) -> None:
    details = ", ".join(f"{k}={v}" for k, v in event.payload.items())
    print(f"  [event] {event.kind.value} {event.subject_id}: {details}")


def build_system(
    strategy_name: str,
    max_attempts: int,
    declining: Sequence[str],
    verbose: bool,
) -> OrderService:
    """Explicit composition root for the demo."""
    notifier = CallbackNotifier()
    if verbose:
        notifier.subscribe(print_event)

    pool = DriverPool()
    drivers = [
        Driver("D001", "Rajesh Kumar", "+91-9876543211", "KA01AB1234", rating=4.6),
        Driver("D002", "Suresh Patel", "+91-9876543212", "KA01AB5678", rating=4.9),
    ]
    for driver in drivers:
        pool.register(driver)
        pool.update_location(driver.driver_id, DRIVER_LOCATIONS[driver.driver_id])

    declined = set(declining)

    def responder(driver: Driver, assignment) -> bool:
        return driver.driver_id not in declined

    engine = DispatchEngine(
        pool,
        strategy=STRATEGIES[strategy_name](),
        notifier=notifier,
        responder=responder,
        max_attempts=max_attempts,
    )
    return OrderService(engine, notifier=notifier)


def run_scenario(name: str, body: Callable[[], None]) -> bool:
    print_header(name)
    try:
        body()
    except NoDriverAvailable as e:
        print(f"  No driver: {e}")
    except DispatchError as e:
        print(f"ERROR: Scenario '{name}' failed: {e}")
        return False
    return True


def run_demo(service: OrderService) -> bool:
    customer = Customer("C001", "John Doe", "+91-9876543210", CUSTOMER_LOCATION)
    restaurant = Restaurant("R001", "Pizza Paradise", RESTAURANT_LOCATION)
    delivered: List[str] = []

    def normal_flow() -> None:
        order = service.place_order(customer, restaurant, [
            OrderItem("Margherita Pizza", 2, 300),
            OrderItem("Garlic Bread", 1, 150),
            OrderItem("Coke", 2, 50),
        ])
        print(f"  Placed {order.order_id}, total {order.total_amount:.2f}")
        assignment = service.accept_order(order.order_id)
        print(f"  Driver {assignment.driver.driver_id} bound via {assignment.assignment_id}")
        service.start_preparation(order.order_id)
        service.mark_ready(order.order_id)
        service.pick_up(order.order_id)
        service.deliver(order.order_id)
        print(f"  {order.order_id}: {order.status.value}, driver {assignment.driver.status.value}")
        delivered.append(order.order_id)

    def cancel_before_preparation() -> None:
        order = service.place_order(customer, restaurant, [OrderItem("Pepperoni Pizza", 1, 350)])
        service.accept_order(order.order_id)
        penalty = service.cancel_order(order.order_id)
        print(f"  Cancellation penalty: {penalty:.2f}")

    def cancel_after_preparation() -> None:
        order = service.place_order(customer, restaurant, [
            OrderItem("Chicken Pizza", 1, 400),
            OrderItem("French Fries", 1, 100),
        ])
        service.accept_order(order.order_id)
        service.start_preparation(order.order_id)
        penalty = service.cancel_order(order.order_id)
        print(f"  Cancellation penalty: {penalty:.2f}")

    def cancel_after_delivery() -> None:
        if not delivered:
            print("  Skipped: no delivered order")
            return
        try:
            service.cancel_order(delivered[0])
        except InvalidTransition as e:
            print(f"  Rejected as expected: {e}")

    def strategy_change() -> None:
        service.dispatcher.set_strategy(HighestRatedDriverStrategy())
        order = service.place_order(customer, restaurant, [OrderItem("Veg Pizza", 1, 250)])
        assignment = service.accept_order(order.order_id)
        print(f"  Highest rated driver {assignment.driver.driver_id} bound via {assignment.assignment_id}")

    scenarios = [
        ("SCENARIO 1: Normal Order Flow with Delivery", normal_flow),
        ("SCENARIO 2: Cancellation BEFORE Preparation (No Penalty)", cancel_before_preparation),
        ("SCENARIO 3: Cancellation AFTER Preparation (With Penalty)", cancel_after_preparation),
        ("SCENARIO 4: Edge Case - Cannot Cancel After Delivery", cancel_after_delivery),
        ("SCENARIO 5: Driver Assignment Strategy Change", strategy_change),
    ]
    return all([run_scenario(name, body) for name, body in scenarios])


def print_summary(service: OrderService) -> None:
    print_header("FINAL SUMMARY")
    orders = service.list_orders()
    print("\nOrders:")
    print(report.orders_frame(orders).drop(columns=["Created"]).to_string(index=False))
    print("\nAssignments:")
    frame = report.assignments_frame(orders)
    print(frame[["Assignment", "Order", "Driver", "Status"]].to_string(index=False))
    print("\nDrivers:")
    print(report.drivers_frame(service.dispatcher.pool.all_drivers()).to_string(index=False))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="Food-delivery order lifecycle and dispatch demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                            # Nearest-driver dispatch
  python main.py --strategy highest-rated   # Rating-first dispatch
  python main.py --decline D001             # Force a retry on the next driver
        """
    )

    parser.add_argument(
        "--strategy", "-s",
        type=str,
        default="nearest",
        help=f"Initial assignment strategy (default: nearest). Options: {', '.join(STRATEGIES)}"
    )

    parser.add_argument(
        "--max-attempts", "-m",
        type=int,
        default=config.DEFAULT_MAX_ATTEMPTS,
        help=f"Driver accept attempts per dispatch (default: {config.DEFAULT_MAX_ATTEMPTS})"
    )

    parser.add_argument(
        "--decline",
        nargs="+",
        default=[],
        metavar="DRIVER_ID",
        help="Drivers that decline every offer"
    )

    parser.add_argument(
        "--road-distance",
        action="store_true",
        help="Use OSRM road distances instead of straight-line distances"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show events and detailed logs"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.strategy not in STRATEGIES:
        print(f"ERROR: Unknown strategy '{args.strategy}'")
        print(f"Available strategies: {', '.join(STRATEGIES)}")
        return 1
    if args.max_attempts < 1:
        print("ERROR: --max-attempts must be at least 1")
        return 1

    config.USE_ROAD_DISTANCE = args.road_distance

    print_header("FOOD DELIVERY SYSTEM - ORDER LIFECYCLE AND DISPATCH DEMO")
    service = build_system(args.strategy, args.max_attempts, args.decline, args.verbose)

    ok = run_demo(service)
    print_summary(service)

    if not ok:
        print("ERROR: Not every scenario completed")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
