#Purpose: Straight-line geometry for delivery planning.
#Great-circle (Haversine) distance between two (lat, lon) points and the
#urban travel-time heuristic built on top of it.
#No road network here: estimates only.

from __future__ import annotations

import math
from typing import Sequence, Tuple

#internal coordinate type :(lat,lon)
LatLon = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0
DEFAULT_URBAN_SPEED_KMH = 30.0


def haversine_km(a: LatLon, b: LatLon) -> float:
    lat1, lon1 = a
    lat2, lon2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def estimate_travel_minutes(distance_km: float, speed_kmh: float = DEFAULT_URBAN_SPEED_KMH) -> int:
    """
    Whole minutes, rounded up: distance / speed * 60.
    """
    if speed_kmh <= 0:
        raise ValueError("speed_kmh must be > 0")
    return math.ceil(distance_km / speed_kmh * 60)


def travel_minutes_between(a: LatLon, b: LatLon, speed_kmh: float = DEFAULT_URBAN_SPEED_KMH) -> int:
    return estimate_travel_minutes(haversine_km(a, b), speed_kmh)


def centroid(points: Sequence[LatLon]) -> LatLon:
    """
    Arithmetic mean of the coordinates (fine at city scale).
    """
    if not points:
        raise ValueError("centroid of an empty set")
    return (
        sum(p[0] for p in points) / len(points),
        sum(p[1] for p in points) / len(points),
    )
