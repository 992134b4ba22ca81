"""
Geolocation Utilities
Great-circle distance, distance formatting and bounding-box pre-filtering
"""

import math
from typing import Dict

EARTH_RADIUS_KM = 6371
# Absorbs float error for points lying exactly on the cap edge
_BOX_MARGIN_DEG = 1e-9


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points using Haversine formula

    Args:
        lat1: Latitude of point 1
        lon1: Longitude of point 1
        lat2: Latitude of point 2
        lon2: Longitude of point 2

    Returns:
        Distance in kilometers
    """
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    # Rounding can push a just past 1 for antipodal points
    c = 2 * math.asin(math.sqrt(min(1.0, a)))
    return c * EARTH_RADIUS_KM


def format_distance(km: float) -> str:
    """
    Render a distance for display

    Args:
        km: Distance in kilometers

    Returns:
        "350m" below 1km (meters, rounded half up), otherwise "1.2km"
    """
    if km < 1:
        return f"{int(math.floor(km * 1000 + 0.5))}m"
    return f"{km:.1f}km"


def calculate_bounding_box(lat: float, lon: float, radius_km: float) -> Dict[str, float]:
    """
    Calculate bounding box for geo filtering

    The box encloses the whole spherical cap of the radius, so it can only
    be used to discard candidates before the exact haversine check.

    Args:
        lat: Center latitude
        lon: Center longitude
        radius_km: Radius in kilometers

    Returns:
        Dictionary with min/max lat/lon
    """
    angular = radius_km / EARTH_RADIUS_KM
    lat_delta = math.degrees(angular) + _BOX_MARGIN_DEG

    if lat + lat_delta >= 90 or lat - lat_delta <= -90:
        # Cap covers a pole, every longitude is in range
        lon_delta = 180.0
    else:
        ratio = math.sin(angular) / math.cos(math.radians(lat))
        if ratio >= 1:
            lon_delta = 180.0
        else:
            lon_delta = math.degrees(math.asin(ratio)) + _BOX_MARGIN_DEG

    return {
        'lat_min': lat - lat_delta,
        'lat_max': lat + lat_delta,
        'lon_min': lon - lon_delta,
        'lon_max': lon + lon_delta
    }


def within_bounding_box(lat: float, lon: float, box: Dict[str, float]) -> bool:
    """Check whether a coordinate falls inside a box from calculate_bounding_box"""
    if not box['lat_min'] <= lat <= box['lat_max']:
        return False
    if box['lon_min'] < -180 or box['lon_max'] > 180:
        # Box wraps the antimeridian, latitude check only
        return True
    return box['lon_min'] <= lon <= box['lon_max']
