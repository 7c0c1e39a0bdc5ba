from fastapi import APIRouter

from app.api.routes.health import router as health_router
from app.api.routes.results import router as results_router
from app.api.routes.rooms import router as rooms_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(rooms_router, prefix="/rooms", tags=["rooms"])
router.include_router(results_router, prefix="/results", tags=["results"])
