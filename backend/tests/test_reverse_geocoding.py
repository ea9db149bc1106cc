"""
Reverse Geocoding - العنوان من الإحداثيات
Nominatim responses are served by httpx.MockTransport.
"""
import asyncio

import httpx
import pytest

import services.reverse_geocoding as geocoding
from services.reverse_geocoding import (
    UNKNOWN_LOCATION,
    format_coordinates,
    format_location_name,
    get_address_from_coordinates,
    lookup_address,
)

DISPLAY_NAME = "Marina Bay Sands, 10, Bayfront Avenue, Downtown Core, 018956, Singapore"


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGetAddress:

    async def test_returns_display_name(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            seen["agent"] = request.headers.get("user-agent")
            return httpx.Response(200, json={"display_name": DISPLAY_NAME})

        async with client_for(handler) as client:
            address = await get_address_from_coordinates(1.2834, 103.8607, client=client)

        assert address == DISPLAY_NAME
        assert seen["lat"] == "1.2834"
        assert seen["lon"] == "103.8607"
        assert seen["format"] == "json"
        assert seen["agent"] == geocoding.NOMINATIM_USER_AGENT

    async def test_http_error_falls_back_to_coordinates(self):
        async with client_for(lambda request: httpx.Response(503)) as client:
            address = await get_address_from_coordinates(1.2834, 103.8607, client=client)
        assert address == "1.283400, 103.860700"

    async def test_empty_response_falls_back_to_coordinates(self):
        async with client_for(lambda request: httpx.Response(200, json={})) as client:
            address = await get_address_from_coordinates(1.5, 2.5, client=client)
        assert address == format_coordinates(1.5, 2.5)

    async def test_lookup_timeout(self, monkeypatch):
        async def slow(latitude, longitude):
            await asyncio.sleep(1)
            return DISPLAY_NAME

        monkeypatch.setattr(geocoding, "get_address_from_coordinates", slow)
        assert await lookup_address(1.5, 2.5, timeout=0.01) == format_coordinates(1.5, 2.5)


class TestFormatLocationName:

    def test_keeps_first_four_parts_without_postcode(self):
        assert format_location_name(DISPLAY_NAME) == "Marina Bay Sands, Bayfront Avenue, Downtown Core, Singapore"

    @pytest.mark.parametrize("address", [None, "", "1.283400, 103.860700", "-33.8, 151.2", 42])
    def test_unknown(self, address):
        assert format_location_name(address) == UNKNOWN_LOCATION


class TestDebouncedReverseGeocode:

    async def test_superseded_request_resolves_none(self, monkeypatch):
        async def fake_address(latitude, longitude, client=None):
            return f"Street {latitude}, City"

        monkeypatch.setattr(geocoding, "get_address_from_coordinates", fake_address)

        first = asyncio.ensure_future(geocoding.reverse_geocode(1, 1, delay_ms=20, key="screen"))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(geocoding.reverse_geocode(2, 2, delay_ms=20, key="screen"))

        assert await first is None
        assert await second == "Street 2, City"

    async def test_cancel_reverse_geocode(self, monkeypatch):
        async def fake_address(latitude, longitude, client=None):
            return "Somewhere, City"

        monkeypatch.setattr(geocoding, "get_address_from_coordinates", fake_address)

        pending = asyncio.ensure_future(geocoding.reverse_geocode(1, 1, delay_ms=50, key="map"))
        await asyncio.sleep(0)
        geocoding.cancel_reverse_geocode("map")
        assert await pending is None
