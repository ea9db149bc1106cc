"""
Geofence Model - نموذج السياج الجغرافي
الإحداثيات، حدود المكتب، حالة الموقع وسجل الخروج التلقائي
"""
import math
from enum import Enum
from typing import Optional, Any, Dict
from pydantic import BaseModel, ConfigDict, Field


class LocationState(str, Enum):
    """حالة المستخدم بالنسبة لدائرة المكتب"""
    UNKNOWN = "unknown"     # قبل أول قراءة ناجحة أو بعد خطأ
    INSIDE = "inside"       # داخل الدائرة
    OUTSIDE = "outside"     # خارج الدائرة


class WorkMode(str, Enum):
    IN_OFFICE = "in_office"
    SEMI_REMOTE = "semi_remote"
    FULLY_REMOTE = "fully_remote"


class Coordinate(BaseModel):
    """
    Immutable latitude/longitude pair.

    Ranges are not enforced on construction; geometry treats an out-of-range
    coordinate as an unknown distance instead of failing.
    """
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            return False
        return -90 <= self.latitude <= 90 and -180 <= self.longitude <= 180


class GeofenceConfig(BaseModel):
    """Office boundary: a circle around `center`."""
    model_config = ConfigDict(frozen=True)

    center: Coordinate
    radius_meters: float = Field(gt=0)
    id: Optional[str] = None
    name: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> "GeofenceConfig":
        """بناء الإعداد من مستند قاعدة البيانات"""
        return cls(
            center=Coordinate(latitude=doc["latitude"], longitude=doc["longitude"]),
            radius_meters=doc["radius_meters"],
            id=doc.get("id"),
            name=doc.get("name"),
            updated_by=doc.get("updated_by"),
            updated_at=doc.get("updated_at"),
        )


class LocationFix(BaseModel):
    """A device position as returned by the location provider."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    captured_at: Optional[str] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class AttendanceEvent(BaseModel):
    """
    Attendance record as persisted by the attendance store.

    Field names on the wire are kept as `authMethod` / `isManual` to stay
    compatible with records written by the mobile clients.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    type: str  # checkin | checkout
    timestamp: str
    location: Dict[str, Any] = {}
    photo: Optional[str] = None
    auth_method: str = Field(alias="authMethod")
    is_manual: bool = Field(alias="isManual")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


AUTO_CHECKOUT_AUTH_METHOD = "automatic_geofence"
AUTO_CHECKOUT_REASON = "AUTO_CHECKOUT_OUTSIDE_RADIUS"
