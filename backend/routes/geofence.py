from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field
from typing import Optional
from database import db
from models.geofence import LocationState
from services.geofence_runtime import (
    get_checkout_validator,
    get_location_provider,
    get_monitor_registry,
    get_notification_service,
)
from utils.auth import get_current_user
from utils.error_codes import ErrorCode, format_error_message

router = APIRouter(prefix="/api/geofence", tags=["geofence"])


class LocationReport(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    accuracy: Optional[float] = None
    permission_granted: bool = True
    services_enabled: bool = True


class CheckoutValidationRequest(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


async def get_user_profile(user=Depends(get_current_user)) -> dict:
    """بيانات الموظف من التوكن مع نمط العمل والقسم من قاعدة البيانات"""
    profile = dict(user)
    stored = await db.users.find_one(
        {"username": user["username"]},
        {"_id": 0, "password": 0, "password_hash": 0}
    )
    if stored:
        profile.update(stored)
    return profile


@router.post("/location")
async def report_location(body: LocationReport, user=Depends(get_current_user),
                          provider=Depends(get_location_provider)):
    """الجهاز يرسل آخر موقع وحالة صلاحية الموقع"""
    fix = provider.report_location(
        user["username"],
        body.latitude,
        body.longitude,
        accuracy=body.accuracy,
        permission_granted=body.permission_granted,
        services_enabled=body.services_enabled
    )
    return {"received": fix is not None, "fix": fix.model_dump() if fix else None}


@router.post("/monitoring/start")
async def start_monitoring(profile=Depends(get_user_profile), registry=Depends(get_monitor_registry)):
    started = await registry.start(profile)
    if not started:
        raise HTTPException(status_code=400, detail=format_error_message(ErrorCode.LOCATION_PERMISSION_DENIED)["detail"])

    # the first tick may already have ended the session
    monitor = registry.get(profile["username"])
    if monitor is None or monitor.session is None:
        return {"started": True, "active": False, "state": LocationState.UNKNOWN.value}
    return {
        "started": True,
        "active": monitor.is_monitoring_active(),
        "state": monitor.session.last_state.value
    }


@router.post("/monitoring/stop")
async def stop_monitoring(user=Depends(get_current_user), registry=Depends(get_monitor_registry)):
    return {"stopped": registry.stop(user["username"])}


@router.get("/monitoring/state")
async def monitoring_state(user=Depends(get_current_user), registry=Depends(get_monitor_registry)):
    monitor = registry.get(user["username"])
    if monitor is None:
        return {"active": False, "is_inside": None, "state": LocationState.UNKNOWN.value}

    state = await monitor.get_current_location_state()
    return {"active": monitor.is_monitoring_active(), **state}


@router.post("/checkout/validate")
async def validate_checkout(body: Optional[CheckoutValidationRequest] = None, profile=Depends(get_user_profile),
                            validator=Depends(get_checkout_validator)):
    location = None
    if body is not None and body.latitude is not None and body.longitude is not None:
        location = {"latitude": body.latitude, "longitude": body.longitude}
    return await validator.validate_checkout_location(profile, location)


@router.get("/notifications")
async def list_notifications(unread_only: bool = False, limit: int = 50, user=Depends(get_current_user),
                             notifier=Depends(get_notification_service)):
    """إشعارات المتابعة للمستخدم الحالي"""
    return await notifier.get_user_notifications(user["username"], unread_only=unread_only, limit=min(limit, 100))
