"""Coordinate helpers: region labels and great-circle distance."""

import math
from typing import Optional

from cultural_events.models import Region

EARTH_RADIUS_KM = 6371.0

# Tuned to where LCSD venues sit; not a real district boundary.
ISLAND_MAX_LAT = 22.285
KOWLOON_MAX_LAT = 22.36
KOWLOON_LNG = (113.9, 114.27)
NEW_TERRITORIES_LNG = (113.8, 114.4)


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def classify_region(lat: Optional[float], lng: Optional[float]) -> Region:
    """
    Classify a point as Hong Kong Island, Kowloon, New Territories or others.

    Rules are checked in order and the first match wins:

    - missing or non-finite coordinate -> others
    - lat < 22.285 -> hongkong
    - 22.285 <= lat < 22.36 and 113.9 < lng < 114.27 -> kowloon
    - lat >= 22.36 and 113.8 < lng < 114.4 -> newterritories
    - anything else -> others
    """
    if not (_finite(lat) and _finite(lng)):
        return Region.OTHERS

    if lat < ISLAND_MAX_LAT:
        return Region.HONGKONG

    if ISLAND_MAX_LAT <= lat < KOWLOON_MAX_LAT and KOWLOON_LNG[0] < lng < KOWLOON_LNG[1]:
        return Region.KOWLOON

    if lat >= KOWLOON_MAX_LAT and NEW_TERRITORIES_LNG[0] < lng < NEW_TERRITORIES_LNG[1]:
        return Region.NEWTERRITORIES

    return Region.OTHERS


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance between two points, in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
