"""Sync API controller — watcher control, change-event stream and cache management."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from recordsync.application.schemas import (
    CacheStatisticsResponse,
    CheckResultResponse,
    PollIntervalUpdate,
    SchemaUpdate,
    SchemaUpdateResponse,
    WatcherStatisticsResponse,
    WatcherStatusResponse,
)
from recordsync.application.services import (
    ChangeEventBroadcaster,
    DatabaseWatcher,
    RecordCache,
    SchemaSwitchService,
)
from recordsync.application.services.runtime_settings_service import update_runtime_settings
from recordsync.domain.entities import RecordClass
from recordsync.infrastructure.dependencies import (
    get_broadcaster,
    get_cache,
    get_runtime,
    get_schema_switch,
    get_watcher,
)
from recordsync.infrastructure.runtime import SyncRuntime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["Sync"])


# ── Helpers ──────────────────────────────────────────────────────────

def _status_of(runtime: SyncRuntime) -> WatcherStatusResponse:
    watcher = runtime.watcher
    return WatcherStatusResponse(
        state=watcher.state.value,
        poll_interval_seconds=watcher.poll_interval,
        schema_name=runtime.schema_switch.current_schema,
        subscribers=runtime.broadcaster.subscriber_count,
        snapshot_sizes={rc.value: len(watcher.snapshot(rc)) for rc in RecordClass},
        statistics=WatcherStatisticsResponse.model_validate(
            watcher.statistics(), from_attributes=True
        ),
    )


def _cache_statistics(cache: RecordCache) -> CacheStatisticsResponse:
    stats = cache.statistics()
    return CacheStatisticsResponse(
        tests=stats.tests,
        processes=stats.processes,
        functions=stats.functions,
        duplicate_puts=stats.duplicate_puts,
        groups_loaded=stats.groups_loaded,
        hits=stats.hits,
        misses=stats.misses,
        hit_rate=stats.hit_rate,
        has_significant_data=cache.has_significant_data(),
    )


# ── Watcher ──────────────────────────────────────────────────────────

@router.get("/status", response_model=WatcherStatusResponse)
async def get_status(runtime: SyncRuntime = Depends(get_runtime)):
    """Return the watcher state, interval and pass statistics."""
    return _status_of(runtime)


@router.post("/start", response_model=WatcherStatusResponse)
async def start_watcher(runtime: SyncRuntime = Depends(get_runtime)):
    """Start polling. Starting a running watcher changes nothing."""
    await runtime.watcher.start()
    return _status_of(runtime)


@router.post("/stop", response_model=WatcherStatusResponse)
async def stop_watcher(runtime: SyncRuntime = Depends(get_runtime)):
    """Stop polling. A pass in flight completes but publishes nothing."""
    await runtime.watcher.stop()
    return _status_of(runtime)


@router.post("/check", response_model=CheckResultResponse)
async def check_now(watcher: DatabaseWatcher = Depends(get_watcher)):
    """Run one sampling pass now and return the event it produced, if any."""
    change_set = await watcher.check_now()
    if change_set is None:
        return CheckResultResponse(changed=False)
    return CheckResultResponse(changed=True, event=change_set.to_dict())


@router.put("/interval", response_model=WatcherStatusResponse)
async def set_interval(
    body: PollIntervalUpdate,
    runtime: SyncRuntime = Depends(get_runtime),
):
    """Change the polling interval; takes effect on the next tick."""
    try:
        runtime.watcher.poll_interval = body.seconds
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )
    if body.persist:
        update_runtime_settings({"watcher_poll_interval_seconds": body.seconds})
    return _status_of(runtime)


@router.get("/events")
async def stream_events(
    broadcaster: ChangeEventBroadcaster = Depends(get_broadcaster),
) -> StreamingResponse:
    """SSE endpoint for database change events.

    Clients connect via EventSource and receive one 'records_changed'
    event per sampling pass that found changes.
    """
    return StreamingResponse(
        broadcaster.stream_sse(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# ── Cache ────────────────────────────────────────────────────────────

@router.get("/cache", response_model=CacheStatisticsResponse)
async def get_cache_statistics(cache: RecordCache = Depends(get_cache)):
    return _cache_statistics(cache)


@router.delete("/cache", response_model=CacheStatisticsResponse)
async def clear_cache(cache: RecordCache = Depends(get_cache)):
    """Drop every cached record; the next load goes to the store."""
    cache.clear()
    return _cache_statistics(cache)


# ── Schema ───────────────────────────────────────────────────────────

@router.put("/schema", response_model=SchemaUpdateResponse)
async def switch_schema(
    body: SchemaUpdate,
    service: SchemaSwitchService = Depends(get_schema_switch),
):
    """Point the watcher and cache at a different dataset schema."""
    switched = await service.switch(body.schema_name)
    if body.persist:
        update_runtime_settings({"db_schema": service.current_schema or ""})
    return SchemaUpdateResponse(schema_name=service.current_schema, switched=switched)
