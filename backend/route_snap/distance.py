from __future__ import annotations

import math
from collections.abc import Callable, Sequence

Position = Sequence[float]
DistanceMeasurement = Callable[[Position, Position], float]

EARTH_RADIUS_KM = 6371.0

# WGS84 ellipsoid, used by the local approximation
EQUATORIAL_RADIUS_KM = 6378.137
FLATTENING = 1 / 298.257223563


def haversine_distance(a: Position, b: Position) -> float:
    """Great-circle distance in kilometres between two ``(lng, lat)`` pairs."""
    phi1 = math.radians(a[1])
    phi2 = math.radians(b[1])
    dphi = phi2 - phi1
    dlambda = math.radians(b[0] - a[0])
    h = (
        math.sin(dphi / 2.0) ** 2
        + (math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2.0) ** 2))
    )
    return 2.0 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(max(0.0, h))))


def create_cheap_ruler(lat: float) -> DistanceMeasurement:
    """Build a fast distance function valid around a reference latitude.

    Longitude/latitude scale factors are computed once for ``lat``; each call
    is then a scaled Euclidean distance in kilometres. Accurate for features
    spanning up to a few hundred kilometres near the reference latitude.

    Based on Mapbox's cheap-ruler (ISC License, Copyright (c) 2024, Mapbox).
    """
    e2 = FLATTENING * (2 - FLATTENING)
    cos_lat = math.cos(math.radians(lat))
    w2 = 1 / (1 - e2 * (1 - cos_lat * cos_lat))
    w = math.sqrt(w2)

    m = math.radians(1.0) * EQUATORIAL_RADIUS_KM
    kx = m * w * cos_lat
    ky = m * w * w2 * (1 - e2)

    def distance(a: Position, b: Position) -> float:
        delta_lng = a[0] - b[0]
        if (delta_lng > 180 or delta_lng < -180) and math.isfinite(delta_lng):
            # exact wrap into [-180, 180]
            delta_lng = math.remainder(delta_lng, 360.0)

        dx = delta_lng * kx
        dy = (a[1] - b[1]) * ky
        return math.sqrt(dx * dx + dy * dy)

    return distance


def distance_measurement_for(strategy: str, reference_lat: float = 0.0) -> DistanceMeasurement:
    if str(strategy).strip().lower() == "cheap_ruler":
        return create_cheap_ruler(reference_lat)
    return haversine_distance
