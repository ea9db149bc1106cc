from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel

from models.geofence import Coordinate
from services.geofence_runtime import get_office_provider
from services.office_location import DEFAULT_OFFICE_RADIUS_METERS
from utils.auth import get_current_user
from utils.error_codes import ErrorCode

router = APIRouter(prefix="/api/office-location", tags=["office_location"])


class OfficeLocationUpdate(BaseModel):
    latitude: float
    longitude: float
    radius_meters: float = DEFAULT_OFFICE_RADIUS_METERS


@router.get("")
async def get_office_location(user=Depends(get_current_user), provider=Depends(get_office_provider)):
    """موقع المكتب الحالي - متاح لكل الموظفين"""
    location = await provider.get_office_location()
    return {"configured": location is not None, "location": location.model_dump() if location else None}


@router.put("")
async def update_office_location(body: OfficeLocationUpdate, user=Depends(get_current_user),
                                 provider=Depends(get_office_provider)):
    """تحديث موقع المكتب - super_admin ومدير الموارد البشرية فقط"""
    result = await provider.update_office_location(
        Coordinate(latitude=body.latitude, longitude=body.longitude),
        body.radius_meters,
        acting_user=user
    )

    if not result["success"]:
        status = 403 if result["error_code"] == ErrorCode.GENERAL_FORBIDDEN[0] else 400
        if result["error_code"] == ErrorCode.GENERAL_SERVER_ERROR[0]:
            status = 500
        raise HTTPException(status_code=status, detail=result["error"])

    location = result["location"]
    return {"success": True, "location": location.model_dump() if location else None}
