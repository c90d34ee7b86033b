from fastapi import APIRouter

from app.shiftledger.core.config import settings
from app.shiftledger.routers.health import router as health_router
from app.shiftledger.routers.metrics import router as metrics_router
from app.shiftledger.routers.payments import router as payments_router
from app.shiftledger.routers.shift_sessions import router as shift_sessions_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(shift_sessions_router, tags=["shift-sessions"])
api_router.include_router(payments_router, tags=["payments"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
