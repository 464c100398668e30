# fooddispatch/config.py
"""
Configuration parameters for the food-delivery dispatch core.

This module centralizes all tunable parameters, making it easy to:
- Adjust the cancellation penalty tiers
- Bound the dispatch retry loop
- Switch between straight-line and road distances

Values are read at call time (``config.X``), so they can be overridden
by the host process or patched in tests.
"""

from typing import Final

# =============================================================================
# ORDER LIFECYCLE
# =============================================================================

CANCELLATION_PENALTY: float = 50.0
"""
Fee charged when an order is cancelled after the restaurant started
preparing it (PREPARING or READY). Earlier cancellations are free.
"""

NO_PENALTY: Final[float] = 0.0
"""Penalty for cancellations before any preparation work."""

# =============================================================================
# DISPATCH PARAMETERS
# =============================================================================

DEFAULT_MAX_ATTEMPTS: int = 3
"""
Upper bound on driver accept attempts per dispatch call.
Each rejected candidate consumes one attempt; the loop never runs longer.
"""

ORDER_ID_PREFIX: Final[str] = "ORD"
ASSIGNMENT_ID_PREFIX: Final[str] = "DEL"
ID_WIDTH: Final[int] = 4
"""Zero-padded width of generated ids (ORD0001, DEL0001, ...)."""

# =============================================================================
# ROAD DISTANCE (OSRM) CONFIGURATION
# =============================================================================

EARTH_RADIUS_KM: Final[float] = 6371.0

USE_ROAD_DISTANCE: bool = False
"""
Enable real road distance calculation via OSRM.
When True, uses actual road network distances instead of straight-line.
When False, uses Haversine (great-circle) distance.
"""

OSRM_SERVER_URL: str = "https://router.project-osrm.org"
"""
OSRM server URL. Options:
- "https://router.project-osrm.org" (public demo, rate-limited)
- "http://localhost:5000" (local Docker instance)
"""

OSRM_TIMEOUT_SECONDS: float = 5.0
"""Timeout for OSRM API requests. Fail fast so dispatch never stalls."""

OSRM_CACHE_SIZE: int = 10000
"""Maximum number of route results to cache. Prevents repeated API calls."""

HAVERSINE_FALLBACK_MULTIPLIER: float = 1.4
"""
Multiplier applied to Haversine distance when OSRM fails.
Typical city roads are 1.3-1.5x longer than straight-line distance.
"""
