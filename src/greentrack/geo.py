"""Great-circle distance between fixes."""

from __future__ import annotations

import math

from greentrack.models import GeoCoordinate

EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius in meters


def distance_meters(a: GeoCoordinate, b: GeoCoordinate) -> float:
    """Compute Haversine distance in meters between two coordinates.

    Uses the atan2 form; the haversine term is clamped to [0, 1] so that
    rounding near the poles or the antimeridian cannot leave the domain.

    Args:
        a: First coordinate.
        b: Second coordinate.

    Returns:
        Distance in meters, always >= 0.
    """

    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    h = min(1.0, max(0.0, h))
    c = 2.0 * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))
    return EARTH_RADIUS_M * c


def is_valid_coordinate(c: GeoCoordinate) -> bool:
    """True if latitude/longitude are finite and within their ranges."""

    lat, lon = c.latitude, c.longitude
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0
