"""
Notifications Model - نموذج الإشعارات
إشعارات الحضور والسياج الجغرافي
"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class NotificationType(str, Enum):
    """أنواع الإشعارات"""
    # سياج جغرافي
    AUTO_CHECKOUT = "auto_checkout"                       # خروج تلقائي
    EMPLOYEE_AUTO_CHECKOUT = "employee_auto_checkout"     # خروج تلقائي لموظف (للمدير)
    OUTSIDE_OFFICE = "outside_office"                     # خارج نطاق المكتب
    BACK_IN_OFFICE = "back_in_office"                     # العودة لنطاق المكتب
    LOCATION_UNAVAILABLE = "location_unavailable"         # تعذر تحديد الموقع

    # عام
    SYSTEM = "system"                                     # نظام


class NotificationPriority(str, Enum):
    """أولوية الإشعار"""
    CRITICAL = "critical"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


NOTIFICATION_ICONS = {
    NotificationType.AUTO_CHECKOUT: "LogOut",
    NotificationType.EMPLOYEE_AUTO_CHECKOUT: "UserMinus",
    NotificationType.OUTSIDE_OFFICE: "MapPinOff",
    NotificationType.BACK_IN_OFFICE: "MapPin",
    NotificationType.LOCATION_UNAVAILABLE: "LocateOff",
    NotificationType.SYSTEM: "Settings",
}

NOTIFICATION_COLORS = {
    NotificationType.AUTO_CHECKOUT: "#F97316",          # برتقالي
    NotificationType.EMPLOYEE_AUTO_CHECKOUT: "#F97316",
    NotificationType.OUTSIDE_OFFICE: "#EF4444",         # أحمر
    NotificationType.BACK_IN_OFFICE: "#10B981",         # أخضر
    NotificationType.LOCATION_UNAVAILABLE: "#F59E0B",   # أصفر
}

NOTIFICATION_PRIORITIES = {
    NotificationType.AUTO_CHECKOUT: NotificationPriority.HIGH,
    NotificationType.EMPLOYEE_AUTO_CHECKOUT: NotificationPriority.NORMAL,
    NotificationType.OUTSIDE_OFFICE: NotificationPriority.HIGH,
    NotificationType.BACK_IN_OFFICE: NotificationPriority.NORMAL,
    NotificationType.LOCATION_UNAVAILABLE: NotificationPriority.HIGH,
}


class NotificationRecord(BaseModel):
    """سجل الإشعار"""
    id: str
    recipient_id: Optional[str] = None
    recipient_username: str
    notification_type: str
    title: str
    message: str
    priority: str = "normal"
    icon: str = "Bell"
    color: str = "#6B7280"
    metadata: Optional[dict] = None

    is_read: bool = False
    read_at: Optional[str] = None
    created_at: str
