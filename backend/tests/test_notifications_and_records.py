"""
Notifications & Attendance Records - الإشعارات وسجلات الحضور
"""
from models.notifications import NotificationType
from services.attendance_store import AttendanceStore
from services.notification_service import NotificationService

EMPLOYEE = {"username": "sara", "uid": "u-1", "name": "Sara Ali", "department": "Sales"}


class TestNotificationService:

    async def test_notify_user_persists(self, fake_db):
        service = NotificationService(fake_db)
        notification = await service.notify_user(
            EMPLOYEE, NotificationType.AUTO_CHECKOUT, "Automatic Check-Out", "You left the office area."
        )

        assert notification["recipient_username"] == "sara"
        assert notification["recipient_id"] == "u-1"
        assert notification["priority"] == "high"
        assert notification["is_read"] is False
        assert "_id" not in notification

        stored = await service.get_user_notifications("sara")
        assert [n["title"] for n in stored] == ["Automatic Check-Out"]

    async def test_notify_user_swallows_store_errors(self, fake_db):
        fake_db.notifications.fail_with = RuntimeError("db down")
        service = NotificationService(fake_db)
        assert await service.notify_user(EMPLOYEE, NotificationType.SYSTEM, "t", "b") is None

    async def test_manager_notified(self, fake_db):
        fake_db.users.docs.append({"username": "omar", "uid": "u-2", "role": "manager", "department": "Sales"})
        service = NotificationService(fake_db)

        notification = await service.notify_manager(EMPLOYEE, 1987.4)

        assert notification["recipient_username"] == "omar"
        assert notification["notification_type"] == "employee_auto_checkout"
        assert notification["title"] == "Employee Auto Check-Out"
        assert "Sara Ali" in notification["message"]
        assert "2.0 km" in notification["message"]

    async def test_no_manager_found(self, fake_db):
        service = NotificationService(fake_db)
        assert await service.notify_manager(EMPLOYEE, 1500) is None
        assert fake_db.notifications.docs == []

    async def test_unread_filter(self, fake_db):
        service = NotificationService(fake_db)
        await service.notify_user(EMPLOYEE, NotificationType.SYSTEM, "first", "b")
        await service.notify_user(EMPLOYEE, NotificationType.SYSTEM, "second", "b")
        fake_db.notifications.docs[0]["is_read"] = True

        unread = await service.get_user_notifications("sara", unread_only=True)
        assert [n["title"] for n in unread] == ["second"]


class TestAttendanceStore:

    async def test_last_record_decides_checked_in(self, fake_db):
        store = AttendanceStore(fake_db)
        assert await store.is_user_checked_in("sara") is False

        await store.append_record({"id": "1", "username": "sara", "type": "checkin", "timestamp": "2026-03-01T08:00:00+00:00"})
        assert await store.is_user_checked_in("sara") is True

        await store.append_record({"id": "2", "username": "sara", "type": "checkout", "timestamp": "2026-03-01T17:00:00+00:00"})
        assert await store.is_user_checked_in("sara") is False

        last = await store.query_last_record_for_user("sara")
        assert last["id"] == "2"

    async def test_append_failure_returns_none(self, fake_db):
        fake_db.attendance_records.fail_with = RuntimeError("write failed")
        store = AttendanceStore(fake_db)
        assert await store.append_record({"id": "1", "username": "sara", "type": "checkout"}) is None

    async def test_read_failure_means_not_checked_in(self, fake_db):
        store = AttendanceStore(fake_db)
        fake_db.attendance_records.fail_with = RuntimeError("timeout")
        assert await store.is_user_checked_in("sara") is False
