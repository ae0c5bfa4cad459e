"""Utility helpers for the restaurant feed."""

from __future__ import annotations

import math
from typing import Optional

EARTH_RADIUS_MILES = 3959.0


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    if not value:
        return "unset"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...{value[-visible:]}"


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles."""
    R = EARTH_RADIUS_MILES
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return R * c


def distance_miles(
    origin_lat: float,
    origin_lng: float,
    point_lat: Optional[float],
    point_lng: Optional[float],
) -> Optional[float]:
    """Distance from the origin to a point, or None when the point has no coordinates.

    None is "no distance", which callers rank after every known distance.
    """
    if point_lat is None or point_lng is None:
        return None
    return haversine_miles(origin_lat, origin_lng, point_lat, point_lng)


def parse_clock(value: str) -> Optional[int]:
    """Parse "HH:MM" into minutes after midnight."""
    if not value:
        return None
    parts = str(value).strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        return None
    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def half_hour_slots(start: str, count: int) -> list[str]:
    base = parse_clock(start) or 0
    return [f"{(base + 30 * i) // 60:02d}:{(base + 30 * i) % 60:02d}" for i in range(count)]
