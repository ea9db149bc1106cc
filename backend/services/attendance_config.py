"""
Attendance Configuration Service - إعدادات الحضور العامة
مثل تفعيل الخروج التلقائي عند مغادرة نطاق المكتب
"""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional

from services.config_cache import ConfigCache
from utils.error_codes import PermissionDenied

logger = logging.getLogger(__name__)

AUTO_CHECKOUT_KEY = "auto_checkout_enabled"
CONFIG_CACHE_TTL_MS = int(os.environ.get("CONFIG_CACHE_TTL_MS", 5 * 60 * 1000))  # 5 دقائق

CONFIG_ADMIN_ROLE = "super_admin"


class AttendanceConfigStore:
    """Remote source of truth: the `attendance_config` collection."""

    def __init__(self, database=None):
        if database is None:
            from database import db as database
        self.collection = database.attendance_config

    async def get_config(self, key: str) -> Optional[Any]:
        doc = await self.collection.find_one({"config_key": key}, {"_id": 0})
        if not doc:
            return None
        return doc.get("config_value")

    async def set_config(self, key: str, value: Any, acting_user: dict, description: str = None):
        # التحقق من الصلاحية على مستوى الخادم
        if (acting_user or {}).get("role") != CONFIG_ADMIN_ROLE:
            raise PermissionDenied("Only super_admin can change attendance configuration")

        await self.collection.update_one(
            {"config_key": key},
            {"$set": {
                "config_key": key,
                "config_value": value,
                "description": description,
                "updated_by": acting_user.get("username"),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }},
            upsert=True
        )


class AttendanceConfigService:
    """Cached access to attendance configuration flags."""

    def __init__(self, store=None, cache: ConfigCache = None, ttl_ms: int = CONFIG_CACHE_TTL_MS):
        self.store = store if store is not None else AttendanceConfigStore()
        self.cache = cache if cache is not None else ConfigCache()
        self.ttl_ms = ttl_ms

    async def get_attendance_config(self, key: str, use_cache: bool = True) -> Optional[Any]:
        if not use_cache:
            self.cache.invalidate(key)
        return await self.cache.get(key, lambda: self.store.get_config(key), self.ttl_ms)

    async def is_auto_checkout_enabled(self, use_cache: bool = True) -> bool:
        """
        Defaults to False when the flag is missing or cannot be read, which
        keeps location enforcement on for manual checkout.
        """
        try:
            config = await self.get_attendance_config(AUTO_CHECKOUT_KEY, use_cache)
        except Exception as e:
            logger.error(f"❌ Error checking auto checkout flag: {e}")
            return False

        if not isinstance(config, dict):
            return False
        return config.get("enabled") is True

    async def set_attendance_config(self, key: str, value: Any, acting_user: dict, description: str = None) -> dict:
        """
        تحديث إعداد (super_admin فقط)

        Returns:
            {"success": bool, "error": Optional[str]}
        """
        logger.info(f"Setting config {key}: {value}")

        try:
            await self.store.set_config(key, value, acting_user, description)
        except PermissionDenied as e:
            logger.warning(f"⚠️ Config {key} update rejected: {e.message}")
            return {"success": False, "error": e.message}
        except Exception as e:
            logger.error(f"❌ Error setting config {key}: {e}")
            return {"success": False, "error": str(e) or "Failed to update configuration"}

        self.cache.invalidate(key)
        logger.info(f"✅ Config {key} updated successfully")
        return {"success": True, "error": None}

    async def set_auto_checkout_enabled(self, enabled: bool, acting_user: dict) -> dict:
        return await self.set_attendance_config(
            AUTO_CHECKOUT_KEY,
            {"enabled": bool(enabled)},
            acting_user,
            "Enable automatic checkout when employee leaves the office radius"
        )

    def clear_all_config_cache(self):
        self.cache.invalidate_all()
