"""Services package initialization."""

# Only leaf modules here: models import geo, so importing anything that
# imports models would be circular.
from routeoptima.services.geo import Coordinate, distance

__all__ = [
    "Coordinate",
    "distance",
]
