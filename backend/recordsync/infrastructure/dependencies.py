"""FastAPI dependency injection — hands the app-scoped sync runtime to endpoints."""

from fastapi import Depends, HTTPException, Request, status

from recordsync.application.services import (
    ChangeEventBroadcaster,
    DatabaseWatcher,
    RecordCache,
    RecordLoader,
    SchemaSwitchService,
)
from recordsync.infrastructure.runtime import SyncRuntime


def get_runtime(request: Request) -> SyncRuntime:
    """The SyncRuntime built in the lifespan and stored on ``app.state``."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync runtime is not initialised",
        )
    return runtime


def get_watcher(runtime: SyncRuntime = Depends(get_runtime)) -> DatabaseWatcher:
    return runtime.watcher


def get_broadcaster(runtime: SyncRuntime = Depends(get_runtime)) -> ChangeEventBroadcaster:
    return runtime.broadcaster


def get_cache(runtime: SyncRuntime = Depends(get_runtime)) -> RecordCache:
    return runtime.cache


def get_loader(runtime: SyncRuntime = Depends(get_runtime)) -> RecordLoader:
    return runtime.loader


def get_schema_switch(runtime: SyncRuntime = Depends(get_runtime)) -> SchemaSwitchService:
    return runtime.schema_switch
