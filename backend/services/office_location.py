"""
Office Location Service - موقع المكتب ونطاق السياج

Reads the single configured office boundary and applies administrative
updates. The store re-checks permissions; its rejection is final even when
the local check passed.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from models.geofence import Coordinate, GeofenceConfig
from utils.error_codes import ErrorCode, PermissionDenied, RemoteUnavailable, ValidationError
from utils.geo import validate_geofence

logger = logging.getLogger(__name__)

OFFICE_LOCATION_DOC_ID = "office"
DEFAULT_OFFICE_RADIUS_METERS = 1000

INSUFFICIENT_PERMISSIONS = "Insufficient permissions. Only super_admin and HR can update office location."


def can_update_office_location(user: Optional[dict]) -> bool:
    """super_admin أو مدير قسم الموارد البشرية فقط"""
    if not user:
        return False

    if user.get("role") == "super_admin":
        return True

    if user.get("role") == "manager" and user.get("department") == "HR":
        return True

    return False


class OfficeLocationStore:
    """MongoDB-backed office location (collections `office_location`, `users`)."""

    def __init__(self, database=None):
        if database is None:
            from database import db as database
        self.db = database

    async def fetch(self) -> Optional[dict]:
        return await self.db.office_location.find_one({"id": OFFICE_LOCATION_DOC_ID}, {"_id": 0})

    async def save(self, latitude: float, longitude: float, radius_meters: float, acting_user: dict) -> dict:
        # نعيد قراءة المستخدم من قاعدة البيانات ولا نثق بالتوكن وحده
        stored_user = await self.db.users.find_one(
            {"username": acting_user.get("username")},
            {"_id": 0, "username": 1, "role": 1, "department": 1}
        )
        if not stored_user:
            raise PermissionDenied("User not found in database")
        if not can_update_office_location(stored_user):
            raise PermissionDenied(INSUFFICIENT_PERMISSIONS)

        doc = {
            "id": OFFICE_LOCATION_DOC_ID,
            "latitude": latitude,
            "longitude": longitude,
            "radius_meters": radius_meters,
            "updated_by": stored_user["username"],
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "revision": str(uuid.uuid4()),
        }
        await self.db.office_location.update_one({"id": OFFICE_LOCATION_DOC_ID}, {"$set": doc}, upsert=True)
        return doc


def validate_office_input(center: Coordinate, radius_meters: float):
    """Raises ValidationError with the first problem found."""
    result = validate_geofence(
        {"latitude": center.latitude, "longitude": center.longitude, "radius_meters": radius_meters},
        require_name=False
    )
    if not result["valid"]:
        raise ValidationError(result["errors"][0])


class OfficeLocationProvider:

    def __init__(self, store=None):
        self.store = store if store is not None else OfficeLocationStore()

    async def get_office_location(self) -> Optional[GeofenceConfig]:
        """None when never configured or when the store cannot be reached."""
        try:
            doc = await self.store.fetch()
        except Exception as e:
            logger.error(f"❌ {RemoteUnavailable.__name__}: error getting office location: {e}")
            return None

        if not doc:
            return None

        try:
            return GeofenceConfig.from_document(doc)
        except Exception as e:
            logger.error(f"❌ Stored office location is malformed: {e}")
            return None

    async def update_office_location(self, center: Coordinate, radius_meters: float = DEFAULT_OFFICE_RADIUS_METERS,
                                     acting_user: dict = None) -> dict:
        """
        تحديث موقع المكتب

        Returns:
            {"success": bool, "error": Optional[str], "error_code": Optional[str], "location": Optional[GeofenceConfig]}
        """
        logger.info(
            f"Office location update requested by {(acting_user or {}).get('username')}: "
            f"{center.latitude}, {center.longitude} r={radius_meters}"
        )

        try:
            validate_office_input(center, radius_meters)
        except ValidationError as e:
            return {"success": False, "error": e.message, "error_code": e.error_code[0], "location": None}

        if not can_update_office_location(acting_user):
            logger.warning(f"⚠️ Insufficient permissions: {acting_user}")
            return {"success": False, "error": INSUFFICIENT_PERMISSIONS, "error_code": ErrorCode.GENERAL_FORBIDDEN[0],
                    "location": None}

        try:
            await self.store.save(center.latitude, center.longitude, radius_meters, acting_user)
        except PermissionDenied as e:
            logger.warning(f"⚠️ Office location update rejected by store: {e.message}")
            return {"success": False, "error": e.message, "error_code": e.error_code[0], "location": None}
        except Exception as e:
            logger.error(f"❌ Error updating office location: {e}")
            return {"success": False, "error": str(e) or "Failed to update office location",
                    "error_code": ErrorCode.GENERAL_SERVER_ERROR[0], "location": None}

        updated = await self.get_office_location()
        if updated is None:
            logger.warning("⚠️ Office location saved but could not be read back")

        return {"success": True, "error": None, "error_code": None, "location": updated}
