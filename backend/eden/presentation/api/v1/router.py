"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from eden.presentation.api.v1.endpoints.health import router as health_router
from eden.presentation.api.v1.endpoints.collections import router as collections_router
from eden.presentation.api.v1.endpoints.homelab import router as homelab_router
from eden.presentation.api.v1.endpoints.storage import router as storage_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(collections_router)
router.include_router(homelab_router)
router.include_router(storage_router)
