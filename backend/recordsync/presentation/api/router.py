"""Top-level API router — mounts the v1 sync and records API under /api."""

from fastapi import APIRouter

from recordsync.presentation.api.v1.router import router as v1_router

router = APIRouter(
    prefix="/api",
    responses={503: {"description": "Sync runtime not started or store unavailable"}},
)
router.include_router(v1_router)
