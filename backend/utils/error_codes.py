# Error Codes System for the geofence attendance backend
# نظام رموز الأخطاء

from datetime import datetime, timezone
import uuid


class ErrorCode:
    """نظام رموز الأخطاء الموحد"""

    # Geofence / Location Errors (6xxx)
    LOCATION_PERMISSION_DENIED = ("E6001", "Location permission is required for attendance monitoring", "يجب السماح بالوصول للموقع لمتابعة الحضور")
    LOCATION_UNAVAILABLE = ("E6002", "Unable to get your current location", "تعذر تحديد موقعك الحالي")
    OUTSIDE_OFFICE_RADIUS = ("E6003", "Outside the allowed office area", "خارج نطاق المكتب المسموح")
    INVALID_COORDINATES = ("E6005", "Invalid coordinates", "إحداثيات غير صالحة")
    CONFIG_UNAVAILABLE = ("E6006", "Attendance configuration could not be loaded", "تعذر تحميل إعدادات الحضور")
    DUPLICATE_AUTO_CHECKOUT = ("E6007", "Automatic checkout already recorded", "تم تسجيل الخروج التلقائي مسبقاً")

    # General Errors (9xxx)
    GENERAL_FORBIDDEN = ("E9002", "Access denied", "الوصول مرفوض")
    GENERAL_SERVER_ERROR = ("E9003", "Internal server error", "خطأ في الخادم")


class GeofenceError(Exception):
    """Base for failures raised by location, config and storage collaborators."""
    error_code = ErrorCode.GENERAL_SERVER_ERROR

    def __init__(self, message: str = None):
        super().__init__(message or self.error_code[1])
        self.message = message or self.error_code[1]


class PermissionDenied(GeofenceError):
    error_code = ErrorCode.GENERAL_FORBIDDEN


class SensorUnavailable(GeofenceError):
    error_code = ErrorCode.LOCATION_UNAVAILABLE


class RemoteUnavailable(GeofenceError):
    error_code = ErrorCode.CONFIG_UNAVAILABLE


class ValidationError(GeofenceError):
    error_code = ErrorCode.INVALID_COORDINATES


class DuplicateSuppressed(GeofenceError):
    error_code = ErrorCode.DUPLICATE_AUTO_CHECKOUT


def create_error_response(error_code: tuple, details: str = None, details_ar: str = None):
    """
    إنشاء استجابة خطأ موحدة

    Args:
        error_code: tuple من (code, message_en, message_ar)
        details: تفاصيل إضافية بالإنجليزية
        details_ar: تفاصيل إضافية بالعربية

    Returns:
        dict: استجابة الخطأ الموحدة
    """
    code, msg_en, msg_ar = error_code

    error_id = f"{code}-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:6].upper()}"

    return {
        "error": True,
        "error_code": code,
        "error_id": error_id,
        "message": msg_en,
        "message_ar": msg_ar,
        "details": details,
        "details_ar": details_ar,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "support_message": f"If this error persists, contact support with reference: {error_id}",
        "support_message_ar": f"إذا استمر هذا الخطأ، تواصل مع الدعم مع الرقم المرجعي: {error_id}"
    }


def format_error_message(error_code: tuple, details: str = None, details_ar: str = None) -> dict:
    """تنسيق رسالة الخطأ للعرض"""
    response = create_error_response(error_code, details, details_ar)
    return {
        "detail": response
    }
