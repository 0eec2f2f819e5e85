"""Application service — point the sync core at a different logical dataset."""

import logging

from recordsync.application.interfaces import RecordStore
from recordsync.application.services.database_watcher import DatabaseWatcher
from recordsync.application.services.function_preloader import FunctionPreloader
from recordsync.application.services.record_cache import RecordCache

logger = logging.getLogger(__name__)


class SchemaSwitchService:
    """Swaps the store's schema and invalidates everything derived from the old one.

    The cache is cleared and the watcher's snapshots are reset, so the next
    sampling pass re-baselines against the new dataset instead of reporting
    the whole swap as a flood of adds and deletes.
    """

    def __init__(
        self,
        store: RecordStore,
        cache: RecordCache,
        watcher: DatabaseWatcher,
        preloader: FunctionPreloader | None = None,
        schema: str | None = None,
    ):
        self._store = store
        self._cache = cache
        self._watcher = watcher
        self._preloader = preloader
        self._schema = schema or None

    @property
    def current_schema(self) -> str | None:
        return self._schema

    async def switch(self, schema: str | None) -> bool:
        """Switch to ``schema``. Returns False when it is already active."""
        schema = (schema or "").strip() or None
        if schema == self._schema:
            logger.info("Schema '%s' already active", schema)
            return False

        old = self._schema
        if self._preloader is not None:
            await self._preloader.stop()
        self._store.use_schema(schema)
        self._cache.clear()
        self._watcher.reset()
        self._schema = schema
        logger.info("Schema switched: %s → %s", old or "<default>", schema or "<default>")
        return True
