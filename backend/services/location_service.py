"""
Device Location Service - مواقع الأجهزة

Devices push their GPS fixes and permission status to the backend. The
monitor and the checkout validator read the latest fix per user from here.
Reads fail closed: no permission, disabled services or no fresh fix → None.
"""
import asyncio
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from models.geofence import LocationFix
from utils.error_codes import SensorUnavailable

logger = logging.getLogger(__name__)

LOCATION_TIMEOUT_SECONDS = float(os.environ.get("LOCATION_TIMEOUT_SECONDS", 10))
LOCATION_MAX_AGE_SECONDS = float(os.environ.get("LOCATION_MAX_AGE_SECONDS", 60))


@dataclass
class DeviceState:
    permission_granted: bool = True
    services_enabled: bool = True
    fix: Optional[LocationFix] = None
    received_at: Optional[float] = None
    # created by the first waiter, inside the running loop
    updated: Optional[asyncio.Event] = None


class DeviceLocationProvider:

    def __init__(self, timeout: float = LOCATION_TIMEOUT_SECONDS, max_age: float = LOCATION_MAX_AGE_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.timeout = timeout
        self.max_age = max_age
        self._clock = clock
        self._devices: Dict[str, DeviceState] = {}

    def _device(self, username: str) -> DeviceState:
        if username not in self._devices:
            self._devices[username] = DeviceState()
        return self._devices[username]

    def report_location(self, username: str, latitude: Optional[float], longitude: Optional[float],
                        accuracy: Optional[float] = None, permission_granted: bool = True,
                        services_enabled: bool = True) -> Optional[LocationFix]:
        """تسجيل آخر موقع أرسله الجهاز"""
        device = self._device(username)
        device.permission_granted = permission_granted
        device.services_enabled = services_enabled

        fix = None
        if permission_granted and services_enabled and latitude is not None and longitude is not None:
            fix = LocationFix(
                latitude=latitude,
                longitude=longitude,
                accuracy=accuracy,
                captured_at=datetime.now(timezone.utc).isoformat()
            )
            device.fix = fix
            device.received_at = self._clock()

        # wake any reader waiting for a fresh fix
        if device.updated is not None:
            device.updated.set()
            device.updated = None
        return fix

    def has_permission(self, username: str) -> bool:
        device = self._devices.get(username)
        return device is None or device.permission_granted

    def request_permission(self, username: str) -> bool:
        """Server side there is no prompt: the last status the device reported."""
        granted = self.has_permission(username)
        if not granted:
            logger.warning(f"⚠️ Location permission not granted on device of {username}")
        return granted

    def _fresh_fix(self, device: DeviceState) -> Optional[LocationFix]:
        if device.fix is None or device.received_at is None:
            return None
        if self._clock() - device.received_at > self.max_age:
            return None
        return device.fix

    async def get_current_location(self, username: str) -> Optional[LocationFix]:
        device = self._device(username)

        if not device.permission_granted:
            logger.warning(f"⚠️ Location permission not granted for {username}")
            return None
        if not device.services_enabled:
            logger.warning(f"⚠️ Location services are disabled for {username}")
            return None

        fix = self._fresh_fix(device)
        if fix is not None:
            return fix

        if device.updated is None:
            device.updated = asyncio.Event()
        try:
            await asyncio.wait_for(device.updated.wait(), self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ {SensorUnavailable.__name__}: no location fix from {username} within {self.timeout}s")
            return None

        device = self._device(username)
        if not (device.permission_granted and device.services_enabled):
            return None
        return self._fresh_fix(device)

    def forget(self, username: str):
        self._devices.pop(username, None)
