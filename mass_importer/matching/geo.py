"""Great-circle distance and bounding box helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_M = 6_371_008.8
METERS_PER_DEGREE_LAT = math.pi * EARTH_RADIUS_M / 180.0


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Degree-aligned box suitable for ``lat BETWEEN .. AND lon BETWEEN ..`` queries."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def as_params(self) -> dict[str, float]:
        return {
            "min_lat": self.min_lat,
            "max_lat": self.max_lat,
            "min_lon": self.min_lon,
            "max_lon": self.max_lon,
        }


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance between two points in meters."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(lat: float, lon: float, radius_m: float) -> BoundingBox:
    """Return a box that fully contains the circle of ``radius_m`` around a point.

    The longitude delta widens with latitude; near the poles the box spans every
    longitude.
    """

    delta_lat = radius_m / METERS_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6:
        delta_lon = 180.0
    else:
        delta_lon = min(180.0, delta_lat / cos_lat)

    return BoundingBox(
        min_lat=max(-90.0, lat - delta_lat),
        max_lat=min(90.0, lat + delta_lat),
        min_lon=max(-180.0, lon - delta_lon),
        max_lon=min(180.0, lon + delta_lon),
    )
