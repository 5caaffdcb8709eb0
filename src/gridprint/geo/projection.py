"""Spherical (Web) Mercator conversions.

All functions are pure. Latitudes at or beyond the poles make the Mercator
``y`` diverge; callers clamp with :func:`clamp_latitude` where that can happen.
"""

from __future__ import annotations

import math

from gridprint.core.models import GeoPoint, ProjectedPoint, WorldPixel

EARTH_RADIUS = 6378137.0
TILE_SIZE = 256
MAX_LATITUDE = 85.05112878


def to_meters(lng: float, lat: float) -> ProjectedPoint:
    """Project a longitude/latitude pair to spherical-Mercator meters."""

    x = lng * math.pi * EARTH_RADIUS / 180.0
    y = EARTH_RADIUS * math.log(math.tan(math.pi / 4.0 + lat * math.pi / 360.0))
    return ProjectedPoint(x=x, y=y)


def to_lng_lat(x: float, y: float) -> GeoPoint:
    """Inverse of :func:`to_meters`."""

    lng = (x / EARTH_RADIUS) * (180.0 / math.pi)
    lat = (180.0 / math.pi) * (2.0 * math.atan(math.exp(y / EARTH_RADIUS)) - math.pi / 2.0)
    return GeoPoint(lng=lng, lat=lat)


def to_world_pixel(lat: float, lng: float, z: int) -> WorldPixel:
    """Return world pixel coordinates at zoom ``z`` for 256px tiles."""

    scale = TILE_SIZE * (2 ** z)
    x = (lng + 180.0) / 360.0 * scale
    sin_lat = math.sin(lat * math.pi / 180.0)
    y = (0.5 - math.log((1.0 + sin_lat) / (1.0 - sin_lat)) / (4.0 * math.pi)) * scale
    return WorldPixel(x=x, y=y)


def clamp_latitude(lat: float) -> float:
    return max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
