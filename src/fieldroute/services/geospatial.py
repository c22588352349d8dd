"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import MultiPoint

from ..models.domain import Location

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_MI = 3958.8


def haversine(lat1: float, lon1: float, lat2: float, lon2: float, *, unit: str = "km") -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    radius = EARTH_RADIUS_MI if unit == "mi" else EARTH_RADIUS_KM
    return radius * c


def location_distance(a: Location, b: Location, *, unit: str = "km") -> float:
    return haversine(a.latitude, a.longitude, b.latitude, b.longitude, unit=unit)


def centroid(locations: Sequence[Location]) -> Location | None:
    """Planar centroid of a handful of nearby points, or None when empty."""

    if not locations:
        return None
    point = MultiPoint([(loc.longitude, loc.latitude) for loc in locations]).centroid
    return Location(latitude=point.y, longitude=point.x)
