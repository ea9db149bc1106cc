"""
Checkout Validator - التحقق من الانصراف اليدوي
"""
import pytest

from models.geofence import LocationFix
from services.checkout_validator import (
    LOCATION_REQUIRED_MESSAGE,
    VALIDATION_FALLBACK_WARNING,
    CheckoutValidator,
)
from utils.error_codes import ErrorCode
from conftest import FAR_FROM_OFFICE, NEAR_OFFICE


@pytest.fixture
def validator(config_service, location_provider, office_provider):
    config_service.enabled = False
    return CheckoutValidator(config_service, location_provider, office_provider)


class TestWorkModeAndPolicy:

    @pytest.mark.parametrize("mode", ["fully_remote", "semi_remote"])
    async def test_remote_always_valid(self, validator, location_provider, mode):
        location_provider.fix = None
        result = await validator.validate_checkout_location({"username": "ali", "work_mode": mode})
        assert result == {"valid": True}

    async def test_auto_checkout_enabled_skips_location(self, validator, config_service, location_provider,
                                                        office_employee):
        config_service.enabled = True
        location_provider.permission = False
        assert await validator.validate_checkout_location(office_employee) == {"valid": True}
        assert location_provider.calls == 0


class TestLocationRules:

    async def test_inside_is_valid(self, validator, office_employee):
        assert await validator.validate_checkout_location(office_employee) == {"valid": True}

    async def test_outside_blocked_with_distance(self, validator, location_provider, office_employee):
        location_provider.place_at(FAR_FROM_OFFICE)
        result = await validator.validate_checkout_location(office_employee)
        assert result["valid"] is False
        assert result["error_code"] == ErrorCode.OUTSIDE_OFFICE_RADIUS[0]
        assert result["distance"] == pytest.approx(1990, abs=5)
        assert "within 1.0 km" in result["error"]
        assert "2.0 km away" in result["error"]

    async def test_caller_location_takes_precedence(self, validator, location_provider, office_employee):
        location_provider.place_at(FAR_FROM_OFFICE)
        location = {"latitude": NEAR_OFFICE.latitude, "longitude": NEAR_OFFICE.longitude}
        assert await validator.validate_checkout_location(office_employee, location) == {"valid": True}
        assert location_provider.calls == 0

    async def test_accepts_location_fix(self, validator, office_employee):
        fix = LocationFix(latitude=FAR_FROM_OFFICE.latitude, longitude=FAR_FROM_OFFICE.longitude)
        result = await validator.validate_checkout_location(office_employee, fix)
        assert result["valid"] is False

    async def test_out_of_range_fix_blocked_without_distance(self, validator, office_employee):
        result = await validator.validate_checkout_location(office_employee, {"latitude": 91, "longitude": 103.8})
        assert result["valid"] is False
        assert result["error_code"] == ErrorCode.OUTSIDE_OFFICE_RADIUS[0]
        assert result["distance"] is None
        assert "Unknown away" in result["error"]

    async def test_no_location_requires_retry(self, validator, location_provider, office_employee):
        location_provider.fix = None
        result = await validator.validate_checkout_location(office_employee)
        assert result == {
            "valid": False,
            "error": LOCATION_REQUIRED_MESSAGE,
            "error_code": ErrorCode.LOCATION_UNAVAILABLE[0],
        }

    async def test_no_office_is_valid(self, validator, office_provider, location_provider, office_employee):
        office_provider.office = None
        location_provider.place_at(FAR_FROM_OFFICE)
        assert await validator.validate_checkout_location(office_employee) == {"valid": True}

    async def test_internal_error_fails_open(self, validator, config_service, office_employee):
        config_service.fail = True
        result = await validator.validate_checkout_location(office_employee)
        assert result == {"valid": True, "warning": VALIDATION_FALLBACK_WARNING}
