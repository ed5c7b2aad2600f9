"""
Geographic helpers for proximity queries.
"""

import math
from typing import Dict

KM_PER_DEGREE_LAT = 111.132
KM_PER_DEGREE_LON_AT_EQUATOR = 111.320


def bounding_box(latitude: float, longitude: float, radius_km: float) -> Dict[str, float]:
    """
    Approximate square box of +/- radius_km around a point.

    Good enough for "nearby" alert targeting; not a geodesic distance.
    Longitude span is clamped near the poles where cos(lat) tends to zero.
    """
    delta_lat = radius_km / KM_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(latitude)), 1e-6)
    delta_lon = min(radius_km / (KM_PER_DEGREE_LON_AT_EQUATOR * cos_lat), 180.0)

    return {
        "min_lat": latitude - delta_lat,
        "max_lat": latitude + delta_lat,
        "min_lon": longitude - delta_lon,
        "max_lon": longitude + delta_lon,
    }


def in_box(box: Dict[str, float], latitude: float, longitude: float) -> bool:
    return (
        box["min_lat"] <= latitude <= box["max_lat"]
        and box["min_lon"] <= longitude <= box["max_lon"]
    )
