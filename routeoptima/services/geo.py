"""
Great-circle distance between coordinates.

No validation happens here: out-of-range latitudes/longitudes are used as given.
"""

from math import asin, cos, radians, sin, sqrt
from typing import NamedTuple

EARTH_RADIUS_KM = 6371.0


class Coordinate(NamedTuple):
    """A latitude/longitude pair in decimal degrees."""
    latitude: float
    longitude: float


def distance(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in kilometers. Symmetric, and 0.0 when a == b."""
    if a == b:
        return 0.0

    lat1, lon1 = radians(a[0]), radians(a[1])
    lat2, lon2 = radians(b[0]), radians(b[1])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push h a hair above 1 for antipodal points
    return 2 * EARTH_RADIUS_KM * asin(sqrt(min(1.0, h)))
