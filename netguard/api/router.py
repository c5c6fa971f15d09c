from fastapi import APIRouter

from netguard.api.routes.detection import router as detection_router
from netguard.api.routes.events import router as events_router
from netguard.api.routes.models import router as models_router
from netguard.api.routes.network import router as network_router
from netguard.api.routes.signals import router as signals_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(signals_router)
api_router.include_router(events_router)
api_router.include_router(detection_router)
api_router.include_router(models_router)
api_router.include_router(network_router)
