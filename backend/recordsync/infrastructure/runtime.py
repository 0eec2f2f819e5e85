"""Sync runtime — builds and owns the long-lived watcher / cache / loader objects.

One SyncRuntime is created per application in the FastAPI lifespan and
attached to ``app.state``; request handlers reach it through the
dependencies module instead of module-level singletons.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from recordsync.application.interfaces import RecordStore
from recordsync.application.services import (
    ChangeEventBroadcaster,
    DatabaseWatcher,
    FunctionPreloader,
    RecordCache,
    RecordLoader,
    SchemaSwitchService,
)
from recordsync.config import Settings
from recordsync.infrastructure.database import (
    Base,
    create_engine,
    create_session_factory,
)
from recordsync.infrastructure.database.repositories import SQLAlchemyRecordStore

logger = logging.getLogger(__name__)


@dataclass
class SyncRuntime:
    """Everything the sync core needs, wired together once."""

    store: RecordStore
    broadcaster: ChangeEventBroadcaster
    cache: RecordCache
    watcher: DatabaseWatcher
    loader: RecordLoader
    preloader: FunctionPreloader
    schema_switch: SchemaSwitchService
    preload_enabled: bool = True
    engine: AsyncEngine | None = None

    async def start(self, *, autostart_watcher: bool = True) -> None:
        # Patch the shared cache from every change event before anyone reads it.
        self.broadcaster.add_listener(self.cache.apply_change_set)
        if autostart_watcher:
            await self.watcher.start()

    async def warm_up(self) -> int:
        """Initial bulk load of processes, then queue their function groups.

        Returns the number of groups queued for background preload.
        """
        processes, _ = await self.loader.load_processes()
        if not self.preload_enabled:
            return 0
        queued = self.preloader.enqueue(p.process_id for p in processes)
        if queued:
            self.preloader.start()
        return queued

    async def shutdown(self) -> None:
        await self.watcher.stop()
        await self.preloader.stop()
        await self.loader.close()
        await self.broadcaster.shutdown()
        self.cache.log_statistics()
        if self.engine is not None:
            await self.engine.dispose()


def build_runtime(
    settings: Settings,
    *,
    store: RecordStore | None = None,
    engine: AsyncEngine | None = None,
) -> SyncRuntime:
    """Construct a SyncRuntime from settings.

    A store may be injected (tests); otherwise a SQLAlchemyRecordStore is
    built on ``engine`` or a fresh engine for ``settings.database_url``.
    """
    if store is None:
        if engine is None:
            engine = create_engine(settings.database_url, echo=False)
        store = SQLAlchemyRecordStore(
            create_session_factory(engine),
            schema=settings.db_schema or None,
        )

    broadcaster = ChangeEventBroadcaster(queue_size=settings.event_queue_size)
    cache = RecordCache(significant_threshold=settings.cache_significant_threshold)
    watcher = DatabaseWatcher(
        store,
        broadcaster,
        poll_interval=settings.watcher_poll_interval_seconds,
        initial_delay=settings.watcher_initial_delay_seconds,
        emit_initial_snapshot=settings.watcher_emit_initial_snapshot,
    )
    loader = RecordLoader(store, cache)
    preloader = FunctionPreloader(
        loader,
        batch_size=settings.preload_batch_size,
        pause=settings.preload_pause_ms / 1000,
    )
    schema_switch = SchemaSwitchService(
        store, cache, watcher, preloader, schema=settings.db_schema or None,
    )
    return SyncRuntime(
        store=store,
        broadcaster=broadcaster,
        cache=cache,
        watcher=watcher,
        loader=loader,
        preloader=preloader,
        schema_switch=schema_switch,
        preload_enabled=settings.preload_enabled,
        engine=engine,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create the record tables if they do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
