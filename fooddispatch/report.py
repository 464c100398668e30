# fooddispatch/report.py
"""
Tabular views over orders, drivers and assignments.

Used by the CLI summary and handy in notebooks; nothing in the core depends
on these frames.
"""

from __future__ import annotations

from typing import Iterable, List

import pandas as pd

from .assignment import DeliveryAssignment
from .models import Driver
from .order import Order

ORDER_COLUMNS = [
    "Order", "Status", "Items", "Total", "Penalty", "Driver", "Attempts", "Created",
]
DRIVER_COLUMNS = ["Driver", "Name", "Status", "Rating", "Latitude", "Longitude", "Assignment"]
ASSIGNMENT_COLUMNS = [
    "Assignment", "Order", "Driver", "Status",
    "Assigned", "Accepted", "Rejected", "Picked Up", "Delivered", "Cancelled",
]


def orders_frame(orders: Iterable[Order]) -> pd.DataFrame:
    rows = []
    for order in orders:
        driver = order.driver
        rows.append({
            "Order": order.order_id,
            "Status": order.status.value,
            "Items": sum(item.quantity for item in order.items),
            "Total": order.total_amount,
            "Penalty": order.cancellation_penalty,
            "Driver": driver.driver_id if driver is not None else None,
            "Attempts": len(order.attempts),
            "Created": order.created_at,
        })
    return pd.DataFrame(rows, columns=ORDER_COLUMNS)


def drivers_frame(drivers: Iterable[Driver]) -> pd.DataFrame:
    rows = []
    for driver in drivers:
        location = driver.location
        assignment = driver.current_assignment
        rows.append({
            "Driver": driver.driver_id,
            "Name": driver.name,
            "Status": driver.status.value,
            "Rating": driver.rating,
            "Latitude": location.latitude if location is not None else None,
            "Longitude": location.longitude if location is not None else None,
            "Assignment": assignment.assignment_id if assignment is not None else None,
        })
    return pd.DataFrame(rows, columns=DRIVER_COLUMNS)


def assignments_frame(orders: Iterable[Order]) -> pd.DataFrame:
    """Every assignment attempt of the given orders, in creation order."""
    attempts: List[DeliveryAssignment] = [a for order in orders for a in order.attempts]
    rows = [{
        "Assignment": a.assignment_id,
        "Order": a.order.order_id,
        "Driver": a.driver.driver_id,
        "Status": a.status.value,
        "Assigned": a.assigned_at,
        "Accepted": a.accepted_at,
        "Rejected": a.rejected_at,
        "Picked Up": a.picked_up_at,
        "Delivered": a.delivered_at,
        "Cancelled": a.cancelled_at,
    } for a in attempts]
    return pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS)


def status_counts(orders: Iterable[Order]) -> pd.Series:
    """Number of orders per status."""
    frame = orders_frame(orders)
    return frame["Status"].value_counts().sort_index()
