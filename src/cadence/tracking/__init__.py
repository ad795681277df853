"""Distance estimation for live tracking."""

from .distance import (
    EARTH_RADIUS_METERS,
    destination_point,
    distance_between,
    haversine_meters,
)

__all__ = [
    "EARTH_RADIUS_METERS",
    "destination_point",
    "distance_between",
    "haversine_meters",
]
