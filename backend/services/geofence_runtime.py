"""
Shared service instances for the API process.

Each getter builds its instance on first use so importing the routes never
touches MongoDB; tests replace these getters through dependency_overrides.
"""
from functools import lru_cache

from services.attendance_config import AttendanceConfigService
from services.attendance_store import AttendanceStore
from services.checkout_validator import CheckoutValidator
from services.geofence_monitor import GeofenceMonitor, MonitorRegistry
from services.location_service import DeviceLocationProvider
from services.notification_service import NotificationService
from services.office_location import OfficeLocationProvider
from services.scheduler import PollScheduler


@lru_cache(maxsize=None)
def get_location_provider() -> DeviceLocationProvider:
    return DeviceLocationProvider()


@lru_cache(maxsize=None)
def get_office_provider() -> OfficeLocationProvider:
    return OfficeLocationProvider()


@lru_cache(maxsize=None)
def get_config_service() -> AttendanceConfigService:
    return AttendanceConfigService()


@lru_cache(maxsize=None)
def get_attendance_store() -> AttendanceStore:
    return AttendanceStore()


@lru_cache(maxsize=None)
def get_notification_service() -> NotificationService:
    return NotificationService()


@lru_cache(maxsize=None)
def get_checkout_validator() -> CheckoutValidator:
    return CheckoutValidator(get_config_service(), get_location_provider(), get_office_provider())


def _new_monitor() -> GeofenceMonitor:
    return GeofenceMonitor(
        location_provider=get_location_provider(),
        office_provider=get_office_provider(),
        config_service=get_config_service(),
        attendance_store=get_attendance_store(),
        notifier=get_notification_service(),
        poll_scheduler=PollScheduler(),
    )


@lru_cache(maxsize=None)
def get_monitor_registry() -> MonitorRegistry:
    return MonitorRegistry(_new_monitor)
