"""Great-circle distance between GPS fixes.

Uses the haversine formula on a spherical Earth. Accurate to well within
consumer GPS error for the short hops between consecutive fixes.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cadence.models.position import PositionFix

# IUGG mean Earth radius
EARTH_RADIUS_METERS = 6_371_008.8


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the surface distance between two coordinates.

    Args:
        lat1: Latitude of the first point in degrees.
        lon1: Longitude of the first point in degrees.
        lat2: Latitude of the second point in degrees.
        lon2: Longitude of the second point in degrees.

    Returns:
        Distance in meters.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    # Clamp guards against rounding pushing a past 1.0 for antipodal points
    c = 2 * math.asin(min(1.0, math.sqrt(a)))
    return EARTH_RADIUS_METERS * c


def distance_between(a: "PositionFix", b: "PositionFix") -> float:
    """Distance in meters between two fixes."""
    return haversine_meters(a.latitude, a.longitude, b.latitude, b.longitude)


def destination_point(
    lat: float, lon: float, bearing_degrees: float, distance_meters: float
) -> tuple[float, float]:
    """Project a point along a bearing.

    Returns:
        (latitude, longitude) in degrees, longitude normalized to [-180, 180).
    """
    angular = distance_meters / EARTH_RADIUS_METERS
    theta = math.radians(bearing_degrees)
    phi1 = math.radians(lat)
    lambda1 = math.radians(lon)

    phi2 = math.asin(
        math.sin(phi1) * math.cos(angular)
        + math.cos(phi1) * math.sin(angular) * math.cos(theta)
    )
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(angular) * math.cos(phi1),
        math.cos(angular) - math.sin(phi1) * math.sin(phi2),
    )
    lon2 = (math.degrees(lambda2) + 540.0) % 360.0 - 180.0
    return math.degrees(phi2), lon2
