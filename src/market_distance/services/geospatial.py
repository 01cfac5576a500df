"""Geospatial helper functions."""

from __future__ import annotations

import math
import re
from typing import Optional

from ..models.domain import Coordinate

EARTH_RADIUS_MILES = 3959.0
METERS_TO_MILES = 0.000621371
FEET_PER_MILE = 5280.0

_DISTANCE_TEXT = re.compile(r"^\s*([\d,]*\.?\d+)\s*(mi|miles?|ft|feet|km|m)\b", re.IGNORECASE)


def haversine_miles(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in miles using the Haversine formula."""

    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_MILES * c


def format_miles(miles: float) -> str:
    return f"{miles:.1f} mi"


def parse_miles(distance_text: str) -> Optional[float]:
    """Recover a mileage from a cached distance string such as ``"2.2 mi"`` or ``"500 ft"``."""

    match = _DISTANCE_TEXT.match(distance_text or "")
    if not match:
        return None
    value = float(match.group(1).replace(",", ""))
    unit = match.group(2).lower()
    if unit in ("ft", "feet"):
        return value / FEET_PER_MILE
    if unit == "km":
        return value * 1000 * METERS_TO_MILES
    if unit == "m":
        return value * METERS_TO_MILES
    return value


def origin_bucket(coordinate: Coordinate, precision: int = 3) -> str:
    """Snap a user coordinate to a coarse grid so GPS jitter keeps the same cache key."""

    # Adding 0.0 folds -0.0 into 0.0 so both sides of the equator/meridian agree.
    lat = round(coordinate.latitude, precision) + 0.0
    lng = round(coordinate.longitude, precision) + 0.0
    return f"{lat:.{precision}f},{lng:.{precision}f}"


def valid_coordinate(coordinate: Coordinate) -> bool:
    return (-90 <= coordinate.latitude <= 90) and (-180 <= coordinate.longitude <= 180)
