"""
Notification Service - خدمة الإشعارات
إشعارات السياج الجغرافي للموظف ومديره

Delivery is fire-and-forget: a failed notification is logged and never
interrupts the attendance flow that triggered it.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from models.notifications import (
    NotificationType,
    NotificationPriority,
    NOTIFICATION_ICONS,
    NOTIFICATION_COLORS,
    NOTIFICATION_PRIORITIES,
    NotificationRecord,
)
from utils.geo import format_distance

logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(self, database=None):
        if database is None:
            from database import db as database
        self.db = database

    async def create_notification(
        self,
        recipient_username: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        recipient_id: str = None,
        priority: NotificationPriority = None,
        metadata: dict = None
    ) -> dict:
        """إنشاء إشعار جديد"""
        now = datetime.now(timezone.utc).isoformat()
        if priority is None:
            priority = NOTIFICATION_PRIORITIES.get(notification_type, NotificationPriority.NORMAL)

        notification = NotificationRecord(
            id=str(uuid.uuid4()),
            recipient_id=recipient_id,
            recipient_username=recipient_username,
            notification_type=notification_type.value,
            title=title,
            message=message,
            priority=priority.value,
            icon=NOTIFICATION_ICONS.get(notification_type, "Bell"),
            color=NOTIFICATION_COLORS.get(notification_type, "#6B7280"),
            metadata=metadata or {},
            created_at=now
        ).model_dump()

        await self.db.notifications.insert_one(notification)
        notification.pop('_id', None)

        return notification

    async def notify_user(self, user: dict, notification_type: NotificationType, title: str, body: str,
                          metadata: dict = None) -> Optional[dict]:
        try:
            return await self.create_notification(
                recipient_username=user.get("username"),
                recipient_id=user.get("uid") or user.get("id"),
                notification_type=notification_type,
                title=title,
                message=body,
                metadata=metadata
            )
        except Exception as e:
            logger.error(f"❌ Error sending notification to {user.get('username')}: {e}")
            return None

    async def find_department_manager(self, department: str) -> Optional[dict]:
        if not department:
            return None
        return await self.db.users.find_one(
            {"department": department, "role": "manager"},
            {"_id": 0, "uid": 1, "id": 1, "username": 1, "name": 1, "email": 1}
        )

    async def notify_manager(self, employee: dict, distance: float) -> Optional[dict]:
        """إشعار مدير القسم بالخروج التلقائي للموظف"""
        try:
            manager = await self.find_department_manager(employee.get("department"))
            if not manager:
                logger.warning(f"⚠️ Could not find manager for department: {employee.get('department')}")
                return None

            employee_name = employee.get("name") or employee.get("username")
            notification = await self.create_notification(
                recipient_username=manager["username"],
                recipient_id=manager.get("uid") or manager.get("id"),
                notification_type=NotificationType.EMPLOYEE_AUTO_CHECKOUT,
                title="Employee Auto Check-Out",
                message=(
                    f"{employee_name} was automatically checked out after leaving the office area "
                    f"({format_distance(distance)} away)."
                ),
                metadata={
                    "type": "auto_checkout",
                    "employee_username": employee.get("username"),
                    "employee_name": employee_name,
                    "distance": distance,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            )
            logger.info(f"Manager notification sent to: {manager['username']}")
            return notification
        except Exception as e:
            logger.error(f"❌ Error notifying manager: {e}")
            return None

    async def get_user_notifications(self, username: str, unread_only: bool = False, limit: int = 50) -> List[dict]:
        """جلب إشعارات المستخدم"""
        query = {"recipient_username": username}
        if unread_only:
            query["is_read"] = False

        notifications = await self.db.notifications.find(
            query, {"_id": 0}
        ).sort("created_at", -1).to_list(limit)

        return notifications
