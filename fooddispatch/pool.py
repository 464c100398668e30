# fooddispatch/pool.py
"""
Driver Pool: registry of drivers and their availability.

The pool's lock only guards the registry mapping. Availability lives on each
Driver behind its own lock, so ``list_available`` is a point-in-time snapshot
that may go stale before an accept attempt; dispatch tolerates that through
its bounded retry loop.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List

from .errors import DriverNotFound
from .models import Coordinate, Driver

logger = logging.getLogger(__name__)


class DriverPool:
    def __init__(self) -> None:
        self._drivers: Dict[str, Driver] = {}
        self._lock = threading.Lock()

    def register(self, driver: Driver) -> None:
        with self._lock:
            if driver.driver_id in self._drivers:
                raise ValueError(f"Driver {driver.driver_id} is already registered")
            self._drivers[driver.driver_id] = driver
        logger.info(f"Driver {driver.driver_id} ({driver.name}) added to pool")

    def remove(self, driver_id: str) -> Driver:
        with self._lock:
            driver = self._drivers.pop(driver_id, None)
        if driver is None:
            raise DriverNotFound(driver_id)
        logger.info(f"Driver {driver_id} removed from pool")
        return driver

    def get(self, driver_id: str) -> Driver:
        with self._lock:
            driver = self._drivers.get(driver_id)
        if driver is None:
            raise DriverNotFound(driver_id)
        return driver

    def all_drivers(self) -> List[Driver]:
        with self._lock:
            return list(self._drivers.values())

    def list_available(self) -> List[Driver]:
        """
        Drivers that are AVAILABLE and have reported a location,
        in registration order.
        """
        return [d for d in self.all_drivers() if d.is_available and d.location is not None]

    def update_location(self, driver_id: str, location: Coordinate) -> None:
        self.get(driver_id).update_location(location)

    def set_offline(self, driver_id: str) -> None:
        self.get(driver_id).go_offline()
        logger.info(f"Driver {driver_id} went offline")

    def set_online(self, driver_id: str) -> None:
        self.get(driver_id).go_online()
        logger.info(f"Driver {driver_id} is online")

    def __len__(self) -> int:
        with self._lock:
            return len(self._drivers)

    def __contains__(self, driver_id: object) -> bool:
        with self._lock:
            return driver_id in self._drivers
