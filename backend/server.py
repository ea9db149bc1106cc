from fastapi import FastAPI, Request
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
import os
import logging
from pathlib import Path

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # the mobile web client reads the device position
        response.headers["Permissions-Policy"] = "geolocation=(self), camera=(), microphone=()"

        if os.environ.get("ENVIRONMENT") == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

from routes.geofence import router as geofence_router
from routes.office_location import router as office_location_router
from routes.attendance_config import router as attendance_config_router

APP_VERSION = "1.0"
SERVICE_NAME = "Geofence Attendance"

app = FastAPI(title=SERVICE_NAME, version=APP_VERSION, redirect_slashes=False)

app.add_middleware(SecurityHeadersMiddleware)

app.include_router(geofence_router)
app.include_router(office_location_router)
app.include_router(attendance_config_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def startup():
    # تشغيل جدولة المهام
    from services.scheduler import init_scheduler
    init_scheduler()
    logger.info("✅ Scheduler initialized")


@app.on_event("shutdown")
async def shutdown():
    from services.geofence_runtime import get_monitor_registry
    from services.scheduler import shutdown_scheduler
    get_monitor_registry().stop_all()
    shutdown_scheduler()
    logger.info("🛑 Scheduler stopped")


# Health endpoint for Kubernetes liveness/readiness probes (without /api prefix)
@app.get("/health")
async def health_check():
    return {"status": "ok", "service": SERVICE_NAME, "version": APP_VERSION}


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": SERVICE_NAME, "version": APP_VERSION}
