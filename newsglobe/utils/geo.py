"""
Spherical geometry helpers for latitude/longitude points.
"""

import math
from typing import Iterable

from newsglobe.models import Coordinates, UNKNOWN_COORDINATES

EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points.

    Returns:
        Distance in kilometers
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_centroid(points: Iterable[Coordinates]) -> Coordinates:
    """
    Centroid of points on the sphere, via the mean of their unit vectors.

    Returns:
        Centroid, or (0, 0) for no points
    """
    points = list(points)
    if not points:
        return UNKNOWN_COORDINATES
    if len(points) == 1:
        return points[0]

    x = y = z = 0.0
    for point in points:
        lat = math.radians(point.lat)
        lng = math.radians(point.lng)
        x += math.cos(lat) * math.cos(lng)
        y += math.cos(lat) * math.sin(lng)
        z += math.sin(lat)

    x /= len(points)
    y /= len(points)
    z /= len(points)

    lng = math.atan2(y, x)
    lat = math.atan2(z, math.sqrt(x * x + y * y))
    return Coordinates(lat=math.degrees(lat), lng=math.degrees(lng))
