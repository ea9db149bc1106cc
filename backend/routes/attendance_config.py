from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel

from services.attendance_config import AUTO_CHECKOUT_KEY, CONFIG_ADMIN_ROLE
from services.geofence_runtime import get_config_service
from utils.auth import get_current_user, require_roles

router = APIRouter(prefix="/api/attendance-config", tags=["attendance_config"])


class AutoCheckoutUpdate(BaseModel):
    enabled: bool


@router.get("/auto-checkout")
async def get_auto_checkout(refresh: bool = False, user=Depends(get_current_user),
                            config_service=Depends(get_config_service)):
    enabled = await config_service.is_auto_checkout_enabled(use_cache=not refresh)
    return {"config_key": AUTO_CHECKOUT_KEY, "enabled": enabled}


@router.put("/auto-checkout")
async def set_auto_checkout(body: AutoCheckoutUpdate, user=Depends(require_roles(CONFIG_ADMIN_ROLE)),
                            config_service=Depends(get_config_service)):
    """تفعيل/تعطيل الخروج التلقائي - super_admin فقط"""
    result = await config_service.set_auto_checkout_enabled(body.enabled, user)
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["error"])
    return {"success": True, "config_key": AUTO_CHECKOUT_KEY, "enabled": body.enabled}


@router.post("/cache/clear")
async def clear_config_cache(user=Depends(require_roles(CONFIG_ADMIN_ROLE)),
                             config_service=Depends(get_config_service)):
    """مسح ذاكرة الإعدادات المؤقتة بعد تعديل قاعدة البيانات يدوياً"""
    config_service.clear_all_config_cache()
    return {"success": True}
