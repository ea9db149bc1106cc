"""
Reverse Geocoding - تحويل الإحداثيات إلى عنوان

Uses OpenStreetMap Nominatim. Lookups are best-effort: failures fall back to
bare coordinates (address capture) or "Unknown location" (display names).
"""
import asyncio
import logging
import os
import re
from typing import Optional

import httpx

from utils.debounce import Debouncer

logger = logging.getLogger(__name__)

NOMINATIM_URL = os.environ.get("NOMINATIM_URL", "https://nominatim.openstreetmap.org/reverse")
NOMINATIM_USER_AGENT = os.environ.get("NOMINATIM_USER_AGENT", "GeofenceAttendance/1.0")
ADDRESS_LOOKUP_TIMEOUT_SECONDS = float(os.environ.get("ADDRESS_LOOKUP_TIMEOUT_SECONDS", 5))
DEFAULT_GEOCODE_DELAY_MS = 600

UNKNOWN_LOCATION = "Unknown location"
_COORDINATE_PATTERN = re.compile(r"^-?\d+\.?\d*,\s*-?\d+\.?\d*$")

_debouncer = Debouncer()


def format_coordinates(latitude: float, longitude: float) -> str:
    return f"{latitude:.6f}, {longitude:.6f}"


async def get_address_from_coordinates(latitude: float, longitude: float,
                                       client: Optional[httpx.AsyncClient] = None) -> str:
    """العنوان الكامل من Nominatim، أو الإحداثيات عند الفشل"""
    params = {
        "format": "json",
        "lat": latitude,
        "lon": longitude,
        "addressdetails": 1,
        "zoom": 18,
    }
    headers = {"User-Agent": NOMINATIM_USER_AGENT}

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=ADDRESS_LOOKUP_TIMEOUT_SECONDS) as own_client:
                response = await own_client.get(NOMINATIM_URL, params=params, headers=headers)
        else:
            response = await client.get(NOMINATIM_URL, params=params, headers=headers)

        response.raise_for_status()
        data = response.json()
        if data and data.get("display_name"):
            return data["display_name"]
        raise ValueError("No address found in response")
    except Exception as e:
        logger.warning(f"⚠️ Address lookup failed for {latitude}, {longitude}: {e}")
        return format_coordinates(latitude, longitude)


async def lookup_address(latitude: float, longitude: float,
                         timeout: float = ADDRESS_LOOKUP_TIMEOUT_SECONDS) -> str:
    """Address lookup bounded by `timeout` seconds."""
    try:
        return await asyncio.wait_for(get_address_from_coordinates(latitude, longitude), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"⚠️ Address lookup timed out after {timeout}s, using coordinates")
        return format_coordinates(latitude, longitude)


def format_location_name(address: Optional[str]) -> str:
    """اسم مختصر للعرض: حتى أربعة أجزاء بدون الرمز البريدي"""
    if not address or not isinstance(address, str):
        return UNKNOWN_LOCATION

    if _COORDINATE_PATTERN.match(address.strip()):
        return UNKNOWN_LOCATION

    parts = [part.strip() for part in address.split(",") if part.strip()]
    meaningful = [part for part in parts if not part.isdigit()][:4]

    if not meaningful:
        return UNKNOWN_LOCATION

    return ", ".join(meaningful)


async def _resolve_location_name(latitude: float, longitude: float) -> str:
    try:
        address = await get_address_from_coordinates(latitude, longitude)
    except Exception as e:
        logger.error(f"❌ Error resolving location name: {e}")
        return UNKNOWN_LOCATION
    return format_location_name(address)


async def reverse_geocode(latitude: float, longitude: float,
                          delay_ms: float = DEFAULT_GEOCODE_DELAY_MS, key: str = "default") -> Optional[str]:
    """
    Debounced display-name lookup.

    A newer request for the same key supersedes this one, which then
    resolves to None.
    """
    task = _debouncer.debounce(key, delay_ms, _resolve_location_name, latitude, longitude)
    await asyncio.wait({task})
    if task.cancelled():
        return None
    return task.result()


def cancel_reverse_geocode(key: Optional[str] = None):
    if key:
        _debouncer.cancel(key)
    else:
        _debouncer.cancel_all()
