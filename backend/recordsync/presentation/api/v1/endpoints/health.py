"""Health check endpoint — reports the sync runtime without requiring it."""

from fastapi import APIRouter, Request

from recordsync.config import get_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Application health plus the watcher state, if the runtime is up."""
    settings = get_settings()
    runtime = getattr(request.app.state, "runtime", None)
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "watcher": runtime.watcher.state.value if runtime is not None else "unavailable",
        "schema": runtime.schema_switch.current_schema if runtime is not None else None,
    }
