"""
Geofence Monitor - متابعة موقع الموظف والخروج التلقائي
============================================================
يتابع موقع الموظف كل 60 ثانية أثناء تسجيل الدخول:
1. الموظف خارج المكتب (عن بعد) أو غير مسجل دخول → لا شيء
2. لا صلاحية موقع أو لا يوجد موقع → إشعار وحالة غير معروفة
3. لا يوجد موقع مكتب مُعرّف → يعتبر داخل النطاق
4. التغيير من داخل إلى خارج → خروج تلقائي (إذا مفعّل) أو إشعار
5. التغيير من خارج إلى داخل → إشعار بالعودة

Only edges act: a state that stays the same never notifies. The first
classification after UNKNOWN is silent because there is no previous edge.
"""
import asyncio
import logging
import os
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from models.geofence import (
    AttendanceEvent,
    LocationFix,
    LocationState,
    WorkMode,
    AUTO_CHECKOUT_AUTH_METHOD,
    AUTO_CHECKOUT_REASON,
)
from models.notifications import NotificationType
from services.reverse_geocoding import (
    ADDRESS_LOOKUP_TIMEOUT_SECONDS,
    format_coordinates,
    lookup_address,
)
from utils.error_codes import DuplicateSuppressed
from utils.geo import distance_meters, finite_distance, format_distance, is_within_radius

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = float(os.environ.get("GEOFENCE_POLL_INTERVAL_SECONDS", 60))
AUTO_CHECKOUT_DEDUPE_MS = int(os.environ.get("AUTO_CHECKOUT_DEDUPE_MS", 120000))  # دقيقتان

FAILURE_PERMISSION = "permission"
FAILURE_NO_FIX = "no_fix"


@dataclass
class MonitoringSession:
    user: dict
    poll_handle: Optional[str] = None
    last_state: LocationState = LocationState.UNKNOWN
    last_auto_checkout_at: Optional[float] = None  # epoch seconds
    tick_in_flight: bool = False
    last_failure: Optional[str] = None

    @property
    def username(self) -> str:
        return self.user.get("username")


def _work_mode(user: dict) -> Optional[str]:
    return user.get("work_mode") or user.get("workMode")


class GeofenceMonitor:
    """Owns at most one monitoring session."""

    def __init__(
        self,
        location_provider,
        office_provider,
        config_service,
        attendance_store,
        notifier,
        poll_scheduler,
        geocoder: Callable = lookup_address,
        clock: Callable[[], float] = time.time,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        dedupe_ms: int = AUTO_CHECKOUT_DEDUPE_MS,
    ):
        self.location_provider = location_provider
        self.office_provider = office_provider
        self.config_service = config_service
        self.attendance_store = attendance_store
        self.notifier = notifier
        self.poll_scheduler = poll_scheduler
        self.geocoder = geocoder
        self._clock = clock
        self.poll_interval = poll_interval
        self.dedupe_ms = dedupe_ms
        self.session: Optional[MonitoringSession] = None
        # called with the username when a session ends on its own
        self.on_session_ended: Optional[Callable[[str], None]] = None

    # ============================================================
    # دورة حياة الجلسة
    # ============================================================

    @staticmethod
    def job_id_for(username: str) -> str:
        return f"geofence_monitor:{username}"

    async def start_monitoring(self, user: dict) -> bool:
        """
        بدء المتابعة

        Runs one check immediately, then arms the recurring poll only if the
        user is still checked in. Returns False when location permission is
        refused or startup fails.
        """
        try:
            if self.session is not None:
                self.stop_monitoring()

            username = user.get("username")
            if not self.location_provider.request_permission(username):
                logger.warning(f"⚠️ Location permission not granted, monitoring not started for {username}")
                return False

            session = MonitoringSession(user=user)
            self.session = session

            await self.check_location_and_checkout()

            if self.session is not session:
                # the immediate check already checked the user out
                return True

            if not await self.attendance_store.is_user_checked_in(username):
                logger.info(f"User {username} not checked in, skipping monitoring start")
                return True

            session.poll_handle = self.poll_scheduler.arm(
                self.job_id_for(username), self.poll, self.poll_interval
            )
            logger.info(f"✅ Location monitoring started for user: {username}")
            return True
        except Exception as e:
            logger.error(f"❌ Error starting location monitoring: {e}")
            return False

    def stop_monitoring(self):
        """Idempotent; safe without an active session."""
        session = self.session
        if session is None:
            return

        if session.poll_handle:
            self.poll_scheduler.cancel(session.poll_handle)

        session.poll_handle = None
        session.last_state = LocationState.UNKNOWN
        session.last_auto_checkout_at = None
        session.last_failure = None
        self.session = None
        logger.info(f"✅ Location monitoring stopped for user: {session.username}")

    def _end_session(self, session: MonitoringSession):
        if self.session is not session:
            return
        self.stop_monitoring()
        if self.on_session_ended is not None:
            self.on_session_ended(session.username)

    def is_monitoring_active(self) -> bool:
        return self.session is not None and self.session.poll_handle is not None

    def get_monitoring_user(self) -> Optional[dict]:
        return self.session.user if self.session else None

    async def get_current_location_state(self) -> dict:
        if self.session is None:
            return {"is_inside": None, "state": LocationState.UNKNOWN.value}
        return await self.check_location_and_checkout()

    # ============================================================
    # فحص الموقع
    # ============================================================

    async def poll(self):
        """
        Scheduled job: ends the session once the user has checked out,
        otherwise runs one tick.
        """
        session = self.session
        if session is None:
            return

        if not await self.attendance_store.is_user_checked_in(session.username):
            logger.info(f"User {session.username} is no longer checked in, stopping monitoring")
            self._end_session(session)
            return

        await self.check_location_and_checkout()

    async def check_location_and_checkout(self) -> dict:
        """
        One poll tick.

        Returns:
            {"is_inside": Optional[bool], "distance": Optional[float], "state": str, ...}
        """
        session = self.session
        if session is None:
            return {"is_inside": None, "state": LocationState.UNKNOWN.value}

        if session.tick_in_flight:
            logger.warning(f"⚠️ Previous location check still running for {session.username}, skipping tick")
            return {"is_inside": None, "state": session.last_state.value, "skipped": True}

        session.tick_in_flight = True
        try:
            return await self._tick(session)
        except Exception as e:
            logger.error(f"❌ Error in location check for {session.username}: {e}")
            if self.session is session:
                session.last_state = LocationState.UNKNOWN
            return {"is_inside": None, "state": LocationState.UNKNOWN.value}
        finally:
            session.tick_in_flight = False

    async def _tick(self, session: MonitoringSession) -> dict:
        user = session.user
        username = session.username

        if _work_mode(user) != WorkMode.IN_OFFICE.value:
            return {"is_inside": True, "state": session.last_state.value, "skipped": True}

        if not await self.attendance_store.is_user_checked_in(username):
            return {"is_inside": True, "state": session.last_state.value, "skipped": True}

        if not self.location_provider.has_permission(username):
            await self._location_failure(
                session,
                FAILURE_PERMISSION,
                "Location Permission Required",
                "Location permission is required for attendance monitoring. Please enable it in settings."
            )
            return {"is_inside": None, "state": session.last_state.value}

        fix = await self.location_provider.get_current_location(username)
        if fix is None:
            await self._location_failure(
                session,
                FAILURE_NO_FIX,
                "Location Unavailable",
                "Unable to determine your location for attendance monitoring. "
                "Please check that location services are enabled."
            )
            return {"is_inside": None, "state": session.last_state.value}

        session.last_failure = None

        office = await self.office_provider.get_office_location()
        if office is None:
            # لا يوجد موقع مكتب - لا يمكن فرض النطاق
            logger.warning("⚠️ No office location configured")
            distance = None
            inside = True
        else:
            distance = finite_distance(distance_meters(fix.coordinate, office.center))
            inside = is_within_radius(fix.coordinate, office.center, office.radius_meters)

        previous = session.last_state
        new_state = LocationState.INSIDE if inside else LocationState.OUTSIDE

        if previous == LocationState.INSIDE and not inside:
            logger.info(f"User left office radius: {username} ({format_distance(distance)})")

            if await self.config_service.is_auto_checkout_enabled(use_cache=True):
                if await self.perform_automatic_checkout(distance, fix):
                    logger.info(f"Auto checkout handled for {username}, stopping monitoring")
                    self._end_session(session)
                    return {
                        "is_inside": False,
                        "distance": distance,
                        "state": LocationState.OUTSIDE.value,
                        "checked_out": True
                    }
            else:
                await self._notify(
                    user,
                    NotificationType.OUTSIDE_OFFICE,
                    "Outside Office Area",
                    f"You are {format_distance(distance)} away from the office. Manual checkout is blocked "
                    f"until you return within {format_distance(office.radius_meters)}.",
                    {"distance": distance}
                )

        elif previous == LocationState.OUTSIDE and inside:
            logger.info(f"User re-entered office radius: {username}")
            await self._notify(
                user,
                NotificationType.BACK_IN_OFFICE,
                "Back in Office Area",
                "You have returned to the office area. You can now check out manually if needed."
            )

        if self.session is session:
            session.last_state = new_state

        return {"is_inside": inside, "distance": distance, "state": new_state.value}

    async def _location_failure(self, session: MonitoringSession, reason: str, title: str, body: str):
        # one notification per failure episode; a good reading resets it
        if session.last_failure != reason:
            logger.warning(f"⚠️ Location unavailable for {session.username}: {reason}")
            await self._notify(session.user, NotificationType.LOCATION_UNAVAILABLE, title, body, {"reason": reason})
        session.last_failure = reason
        session.last_state = LocationState.UNKNOWN

    async def _notify(self, user: dict, notification_type: NotificationType, title: str, body: str,
                      metadata: dict = None):
        try:
            await self.notifier.notify_user(user, notification_type, title, body, metadata)
        except Exception as e:
            logger.error(f"❌ Error sending notification: {e}")

    # ============================================================
    # الخروج التلقائي
    # ============================================================

    async def perform_automatic_checkout(self, distance: Optional[float], fix: Optional[LocationFix] = None) -> bool:
        """
        Write an automatic checkout record for the session user.

        Returns True when the checkout is handled: recorded now, or already
        recorded within the duplicate window.
        """
        session = self.session
        if session is None:
            return False

        now = self._clock()
        if session.last_auto_checkout_at is not None and (now - session.last_auto_checkout_at) * 1000 < self.dedupe_ms:
            logger.info(
                f"{DuplicateSuppressed.__name__}: skipping duplicate auto checkout for {session.username} "
                f"(recent checkout detected)"
            )
            return True

        user = session.user
        try:
            logger.info(f"Performing automatic checkout: {session.username} ({format_distance(distance)})")

            location_data = await self._capture_location(session.username, fix)
            location_data.update({
                "distance_from_office": distance,
                "checkout_reason": AUTO_CHECKOUT_REASON,
            })

            event = AttendanceEvent(
                id=str(uuid.uuid4()),
                username=session.username,
                type="checkout",
                timestamp=datetime.now(timezone.utc).isoformat(),
                location=location_data,
                authMethod=AUTO_CHECKOUT_AUTH_METHOD,
                isManual=False,
            )

            result = await self.attendance_store.append_record(event.to_document())
            if not result:
                logger.error(f"❌ Automatic checkout record was not saved for {session.username}")
                return False

            if session.last_auto_checkout_at is None or now > session.last_auto_checkout_at:
                session.last_auto_checkout_at = now

            logger.info(f"✅ Automatic checkout successful: {session.username} record={result.get('id', event.id)}")

            await self._notify(
                user,
                NotificationType.AUTO_CHECKOUT,
                "Automatic Check-Out",
                f"You have been automatically checked out because you left the office area. "
                f"You were {format_distance(distance)} away from the office.",
                {"distance": distance, "record_id": event.id}
            )

            try:
                await self.notifier.notify_manager(user, distance)
            except Exception as e:
                logger.error(f"❌ Error notifying manager of {session.username}: {e}")

            if self.session is session:
                session.last_state = LocationState.OUTSIDE
            return True
        except Exception as e:
            logger.error(f"❌ Error performing automatic checkout: {e}")
            return False

    async def _capture_location(self, username: str, fix: Optional[LocationFix]) -> dict:
        """الموقع مع العنوان، والإحداثيات فقط إذا تعذر العنوان"""
        if fix is None:
            fix = await self.location_provider.get_current_location(username)
        if fix is None:
            return {}

        try:
            address = await asyncio.wait_for(
                self.geocoder(fix.latitude, fix.longitude), ADDRESS_LOOKUP_TIMEOUT_SECONDS
            )
        except Exception as e:
            logger.warning(f"⚠️ Error getting address, using coordinates: {e!r}")
            address = format_coordinates(fix.latitude, fix.longitude)

        return {
            "latitude": fix.latitude,
            "longitude": fix.longitude,
            "accuracy": fix.accuracy,
            "address": address,
        }


class MonitorRegistry:
    """
    One GeofenceMonitor per username.

    Each monitor still holds a single session; the registry only routes
    requests from many devices to their own monitor.
    """

    def __init__(self, monitor_factory: Callable[[], GeofenceMonitor]):
        self._factory = monitor_factory
        self._monitors: Dict[str, GeofenceMonitor] = {}

    def get(self, username: str) -> Optional[GeofenceMonitor]:
        return self._monitors.get(username)

    def monitor_for(self, username: str) -> GeofenceMonitor:
        if username not in self._monitors:
            monitor = self._factory()
            monitor.on_session_ended = self._forget
            self._monitors[username] = monitor
        return self._monitors[username]

    def _forget(self, username: str):
        self._monitors.pop(username, None)

    async def start(self, user: dict) -> bool:
        return await self.monitor_for(user.get("username")).start_monitoring(user)

    def stop(self, username: str) -> bool:
        monitor = self._monitors.pop(username, None)
        if monitor is None:
            return False
        monitor.stop_monitoring()
        return True

    def stop_all(self):
        for username in list(self._monitors):
            self.stop(username)

    def active_usernames(self) -> List[str]:
        return [username for username, monitor in self._monitors.items() if monitor.is_monitoring_active()]
