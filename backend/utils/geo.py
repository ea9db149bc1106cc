"""
Geometry helpers - حساب المسافات ونطاق السياج الجغرافي

Haversine distance on a spherical Earth. Invalid input never raises: it gives
an infinite distance, which is never inside any radius.
"""
import logging
import math
from numbers import Real
from typing import Iterable, List, Optional, Tuple

from models.geofence import Coordinate, GeofenceConfig

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000  # نصف قطر الأرض بالمتر
UNKNOWN_DISTANCE_TEXT = "Unknown"


def _usable(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _valid_coordinate(point) -> bool:
    if point is None:
        return False
    lat = getattr(point, "latitude", None)
    lon = getattr(point, "longitude", None)
    if not (_usable(lat) and _usable(lon)):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """المسافة بالمتر بين نقطتين، أو ما لا نهاية إذا كانت الإحداثيات غير صالحة"""
    if not (_valid_coordinate(a) and _valid_coordinate(b)):
        logger.warning(f"⚠️ Invalid coordinates for distance: {a!r} -> {b!r}")
        return math.inf

    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lon = math.radians(b.longitude - a.longitude)

    h = math.sin(delta_lat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    return distance_meters(a, b) / 1000


def is_within_radius(point: Coordinate, center: Coordinate, radius_meters: float) -> bool:
    """Inclusive containment test."""
    return distance_meters(point, center) <= radius_meters


def closest_of(point: Coordinate, candidates: Iterable[GeofenceConfig]) -> Tuple[Optional[GeofenceConfig], float]:
    """
    أقرب سياج للنقطة

    Linear scan; the first candidate wins a tie. Returns (None, inf) when
    there are no candidates.
    """
    closest = None
    min_distance = math.inf

    for geofence in candidates:
        distance = distance_meters(point, geofence.center)
        if distance < min_distance:
            min_distance = distance
            closest = geofence

    return closest, min_distance


def finite_distance(meters: Optional[float]) -> Optional[float]:
    """None for an unknown distance; infinity is not valid JSON"""
    return meters if _usable(meters) else None


def format_distance(meters: Optional[float], decimals: int = 1) -> str:
    """تنسيق المسافة للعرض: متر تحت 1000 وإلا كيلومتر"""
    if meters is None or not _usable(meters):
        return UNKNOWN_DISTANCE_TEXT

    if meters < 1000:
        return f"{meters:.{decimals}f} m"

    return f"{meters / 1000:.{decimals}f} km"


def validate_geofence(data: dict, require_name: bool = True) -> dict:
    """
    التحقق من بيانات السياج قبل الحفظ

    The single office boundary has no name, so its update passes
    require_name=False.

    Returns:
        {"valid": bool, "errors": List[str]}
    """
    errors: List[str] = []

    name = data.get("name")
    if require_name and (not isinstance(name, str) or not name.strip()):
        errors.append("Geofence name is required")

    latitude = data.get("latitude")
    if not _usable(latitude):
        errors.append("Valid latitude is required")
    elif latitude < -90 or latitude > 90:
        errors.append("Latitude must be between -90 and 90")

    longitude = data.get("longitude")
    if not _usable(longitude):
        errors.append("Valid longitude is required")
    elif longitude < -180 or longitude > 180:
        errors.append("Longitude must be between -180 and 180")

    radius = data.get("radius_meters")
    if not _usable(radius) or radius <= 0:
        errors.append("Valid radius (greater than 0) is required")

    return {
        "valid": len(errors) == 0,
        "errors": errors
    }
