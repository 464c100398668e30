# fooddispatch/strategies.py
"""
Assignment strategies: pick one driver for an order from a candidate set.

1. **Nearest (default)**: Shortest distance from the driver's last known
   location to the restaurant. Ties go to the earlier-listed candidate.

2. **Highest rated**: Best rating first, nearest among equally rated drivers.

Both skip candidates that have no location or stopped being available since
the pool snapshot was taken. Strategies are stateless and deterministic.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Tuple

from . import utils
from .models import Coordinate, Driver
from .order import Order

logger = logging.getLogger(__name__)

DistanceFn = Callable[[float, float, float, float], float]


class AssignmentStrategy(ABC):
    @abstractmethod
    def select_driver(self, order: Order, candidates: Sequence[Driver]) -> Optional[Driver]:
        """Return the chosen candidate, or None if nobody is usable."""

    @property
    def name(self) -> str:
        return type(self).__name__


def _usable(candidates: Sequence[Driver]) -> List[Driver]:
    return [d for d in candidates if d.location is not None and d.is_available]


class NearestDriverStrategy(AssignmentStrategy):
    """
    Nearest driver to the restaurant.

    Args:
        distance: (lat1, lon1, lat2, lon2) -> km. Defaults to
            ``utils.get_distance``, which honours the road-distance config.
    """

    def __init__(self, distance: Optional[DistanceFn] = None) -> None:
        self.distance = distance or utils.get_distance

    def distance_to(self, driver: Driver, target: Coordinate) -> float:
        return self.distance(
            driver.location.latitude, driver.location.longitude,
            target.latitude, target.longitude
        )

    def rank(self, order: Order, candidates: Sequence[Driver]) -> List[Tuple[Driver, float]]:
        """Usable candidates with their distance, in candidate order."""
        target = order.restaurant.location
        return [(d, self.distance_to(d, target)) for d in _usable(candidates)]

    def select_driver(self, order: Order, candidates: Sequence[Driver]) -> Optional[Driver]:
        best_driver: Optional[Driver] = None
        best_distance: float = float('inf')

        for driver, dist in self.rank(order, candidates):
            logger.debug(f"Order {order.order_id}: {driver.driver_id} is {dist:.2f} km away")
            # Strict comparison keeps the first-seen candidate on ties
            if dist < best_distance:
                best_distance = dist
                best_driver = driver

        if best_driver is not None:
            logger.info(f"Found nearest driver {best_driver.driver_id} ({best_distance:.2f} km away) "
                        f"for order {order.order_id}")
        return best_driver


class HighestRatedDriverStrategy(NearestDriverStrategy):
    """Highest rating wins; distance, then candidate order, break ties."""

    def select_driver(self, order: Order, candidates: Sequence[Driver]) -> Optional[Driver]:
        best: Optional[Tuple[Driver, float]] = None

        for driver, dist in self.rank(order, candidates):
            if best is None:
                best = (driver, dist)
                continue
            best_driver, best_dist = best
            if driver.rating > best_driver.rating or (
                driver.rating == best_driver.rating and dist < best_dist
            ):
                best = (driver, dist)

        if best is None:
            return None
        logger.info(f"Found highest rated driver {best[0].driver_id} (rating {best[0].rating:.1f}) "
                    f"for order {order.order_id}")
        return best[0]


STRATEGIES = {
    "nearest": NearestDriverStrategy,
    "highest-rated": HighestRatedDriverStrategy,
}
"""Strategy registry used by the CLI."""
