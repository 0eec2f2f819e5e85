"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from recordsync.presentation.api.v1.endpoints.health import router as health_router
from recordsync.presentation.api.v1.sync_controller import router as sync_router
from recordsync.presentation.api.v1.records_controller import router as records_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(sync_router)
router.include_router(records_router)
