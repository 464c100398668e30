# fooddispatch/utils.py
"""
Utility functions for the dispatch core.

Provides geographic calculations, the optional OSRM road-distance client,
a UTC clock and thread-safe id sequences.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import requests

from . import config

logger = logging.getLogger(__name__)

# Module-level cache for OSRM results, keyed by rounded coordinates
_osrm_cache: Dict[Tuple[float, float, float, float], Tuple[float, float]] = {}
_osrm_cache_lock = threading.Lock()


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1: Latitude of point 1 in decimal degrees
        lon1: Longitude of point 1 in decimal degrees
        lat2: Latitude of point 2 in decimal degrees
        lon2: Longitude of point 2 in decimal degrees

    Returns:
        Distance in kilometers between the two points

    Example:
        >>> round(haversine_distance(12.9750, 77.5980, 12.9760, 77.5985), 3)
        0.124
    """
    lon1, lat1, lon2, lat2 = map(math.radians, [lon1, lat1, lon2, lat2])

    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = math.sin(dlat / 2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2)**2
    c = 2 * math.asin(math.sqrt(a))

    return c * config.EARTH_RADIUS_KM


def _get_cache_key(lat1: float, lon1: float, lat2: float, lon2: float) -> Tuple[float, float, float, float]:
    """Create a cache key with rounded coordinates (5 decimal places ~ 1m precision)."""
    return (round(lat1, 5), round(lon1, 5), round(lat2, 5), round(lon2, 5))


def osrm_route(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> Optional[Tuple[float, float]]:
    """
    Get road distance and duration from OSRM routing service.

    Results are cached in both directions. Any transport or parsing
    failure is logged and reported as ``None`` so the caller can fall back.

    Returns:
        Tuple of (distance_km, duration_minutes) if successful, None if failed

    Note:
        OSRM expects coordinates in lon,lat order (not lat,lon).
    """
    cache_key = _get_cache_key(lat1, lon1, lat2, lon2)
    reverse_key = _get_cache_key(lat2, lon2, lat1, lon1)
    with _osrm_cache_lock:
        cached = _osrm_cache.get(cache_key) or _osrm_cache.get(reverse_key)
    if cached is not None:
        return cached

    try:
        url = (
            f"{config.OSRM_SERVER_URL}/route/v1/driving/"
            f"{lon1},{lat1};{lon2},{lat2}"
            f"?overview=false"
        )

        response = requests.get(url, timeout=config.OSRM_TIMEOUT_SECONDS)
        response.raise_for_status()

        data = response.json()

        if data.get("code") != "Ok" or not data.get("routes"):
            logger.warning(f"OSRM returned no route: {data.get('code')}")
            return None

        route = data["routes"][0]
        distance_km = route["distance"] / 1000
        duration_min = route["duration"] / 60

        result = (distance_km, duration_min)

    except requests.exceptions.Timeout:
        logger.warning("OSRM request timed out")
        return None
    except requests.exceptions.RequestException as e:
        logger.warning(f"OSRM request failed: {e}")
        return None
    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"OSRM response parsing failed: {e}")
        return None

    with _osrm_cache_lock:
        if len(_osrm_cache) >= config.OSRM_CACHE_SIZE:
            # Drop the oldest 10%
            for key in list(_osrm_cache.keys())[:max(1, config.OSRM_CACHE_SIZE // 10)]:
                del _osrm_cache[key]
        _osrm_cache[cache_key] = result
    return result


def get_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Get the distance between two points using the configured method.

    This is the distance function strategies use by default. It uses OSRM
    road distance when enabled, with fallback to Haversine distance (with a
    multiplier) when OSRM fails.

    Returns:
        Distance in kilometers between the two points
    """
    if config.USE_ROAD_DISTANCE:
        result = osrm_route(lat1, lon1, lat2, lon2)
        if result is not None:
            return result[0]

        logger.debug("Falling back to Haversine distance with multiplier")
        return haversine_distance(lat1, lon1, lat2, lon2) * config.HAVERSINE_FALLBACK_MULTIPLIER

    return haversine_distance(lat1, lon1, lat2, lon2)


def clear_osrm_cache() -> int:
    """
    Clear the OSRM route cache.

    Returns:
        Number of cached entries that were cleared
    """
    with _osrm_cache_lock:
        count = len(_osrm_cache)
        _osrm_cache.clear()
    return count


def get_osrm_cache_stats() -> dict:
    """Get statistics about the OSRM cache."""
    return {
        "size": len(_osrm_cache),
        "max_size": config.OSRM_CACHE_SIZE,
        "utilization": len(_osrm_cache) / config.OSRM_CACHE_SIZE if config.OSRM_CACHE_SIZE > 0 else 0
    }


def utc_now() -> datetime:
    """Timestamp source for every lifecycle event."""
    return datetime.now(timezone.utc)


class IdSequence:
    """
    Thread-safe generator of zero-padded ids such as ``ORD0001``.

    Args:
        prefix: Fixed id prefix
        width: Minimum number of digits
    """

    def __init__(self, prefix: str, width: int = config.ID_WIDTH) -> None:
        self.prefix = prefix
        self.width = width
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{self.prefix}{value:0{self.width}d}"
