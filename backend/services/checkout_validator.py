"""
Checkout Validator - التحقق من موقع الانصراف اليدوي
==================================================
قواعد الانصراف اليدوي:
1. الموظف ليس من فريق المكتب → مسموح
2. الخروج التلقائي مفعّل → مسموح من أي مكان
3. لا يمكن تحديد الموقع → مرفوض (أعد المحاولة)
4. لا يوجد موقع مكتب → مسموح
5. خارج نطاق المكتب → مرفوض مع المسافة
6. داخل النطاق → مسموح
أي خطأ غير متوقع → مسموح مع تحذير
"""
import logging
from typing import Optional, Union

from models.geofence import Coordinate, LocationFix, WorkMode
from utils.error_codes import ErrorCode
from utils.geo import distance_meters, finite_distance, format_distance, is_within_radius

logger = logging.getLogger(__name__)

LOCATION_REQUIRED_MESSAGE = "Unable to get your current location. Please enable location services and try again."
VALIDATION_FALLBACK_WARNING = "Unable to validate location. Checkout allowed."


def _as_coordinate(location: Union[dict, LocationFix, Coordinate, None]) -> Optional[Coordinate]:
    if location is None:
        return None
    if isinstance(location, Coordinate):
        return location
    if isinstance(location, LocationFix):
        return location.coordinate
    latitude = location.get("latitude")
    longitude = location.get("longitude")
    if latitude is None or longitude is None:
        return None
    return Coordinate(latitude=latitude, longitude=longitude)


class CheckoutValidator:

    def __init__(self, config_service, location_provider, office_provider):
        self.config_service = config_service
        self.location_provider = location_provider
        self.office_provider = office_provider

    async def validate_checkout_location(self, user: dict, location=None) -> dict:
        """
        Decide whether a manual checkout may proceed.

        Args:
            user: the employee; `work_mode` (or `workMode`) selects the rules
            location: optional fix supplied by the caller, dict or LocationFix

        Returns:
            {"valid": bool, "error"?: str, "error_code"?: str, "distance"?: float, "warning"?: str}
        """
        try:
            work_mode = user.get("work_mode") or user.get("workMode")
            if work_mode != WorkMode.IN_OFFICE.value:
                return {"valid": True}

            if await self.config_service.is_auto_checkout_enabled(use_cache=True):
                return {"valid": True}

            logger.info("Auto checkout disabled, validating checkout location...")

            current = _as_coordinate(location)
            if current is None:
                fix = await self.location_provider.get_current_location(user.get("username"))
                current = fix.coordinate if fix is not None else None

            if current is None:
                return {
                    "valid": False,
                    "error": LOCATION_REQUIRED_MESSAGE,
                    "error_code": ErrorCode.LOCATION_UNAVAILABLE[0]
                }

            office = await self.office_provider.get_office_location()
            if office is None:
                logger.warning("⚠️ No office location configured, allowing checkout")
                return {"valid": True}

            if is_within_radius(current, office.center, office.radius_meters):
                return {"valid": True}

            distance = distance_meters(current, office.center)
            return {
                "valid": False,
                "error": (
                    f"You must be within {format_distance(office.radius_meters)} of the office to check out. "
                    f"You are currently {format_distance(distance)} away from the office location."
                ),
                "error_code": ErrorCode.OUTSIDE_OFFICE_RADIUS[0],
                "distance": finite_distance(distance)
            }
        except Exception as e:
            logger.error(f"❌ Error validating checkout location: {e}")
            return {"valid": True, "warning": VALIDATION_FALLBACK_WARNING}
