"""
Attendance Store - سجلات الحضور والانصراف
"""
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class AttendanceStore:
    """`attendance_records` collection: append-only check-in / checkout events."""

    def __init__(self, database=None):
        if database is None:
            from database import db as database
        self.collection = database.attendance_records

    async def append_record(self, record: dict) -> Optional[dict]:
        try:
            await self.collection.insert_one(record)
        except Exception as e:
            logger.error(f"❌ Error saving attendance record for {record.get('username')}: {e}")
            return None
        record.pop('_id', None)
        return record

    async def query_last_record_for_user(self, username: str) -> Optional[dict]:
        records = await self.collection.find(
            {"username": username}, {"_id": 0}
        ).sort("timestamp", -1).to_list(1)
        return records[0] if records else None

    async def is_user_checked_in(self, username: str) -> bool:
        """الموظف مسجل دخول إذا كان آخر سجل له check-in"""
        try:
            last_record = await self.query_last_record_for_user(username)
        except Exception as e:
            logger.error(f"❌ Error checking if {username} is checked in: {e}")
            return False
        return bool(last_record) and last_record.get("type") == "checkin"
