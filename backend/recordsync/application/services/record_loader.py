"""Application service — cache-first loading of processes and function groups."""

import asyncio
import logging

from recordsync.application.interfaces import RecordStore
from recordsync.application.services.record_cache import RecordCache
from recordsync.domain.entities import AutomationTest, Function, Process, RecordClass
from recordsync.domain.exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)

MAX_GROUP_READS = 3


class RecordLoader:
    """Serves display consumers from the shared cache, falling back to the store.

    Concurrent requests for the same function group share a single store
    read. The read runs in its own task and every caller awaits it through
    ``asyncio.shield``, so cancelling one caller (e.g. a stopped preloader)
    never cancels the read for the others.

    Results are written to the cache with a token taken before the read:
    a read that overlapped a ``clear()`` is returned but not cached, and a
    group read that overlapped a change event for that group is repeated.
    """

    def __init__(self, store: RecordStore, cache: RecordCache):
        self._store = store
        self._cache = cache
        self._pending_groups: dict[float, asyncio.Task] = {}

    @property
    def cache(self) -> RecordCache:
        return self._cache

    async def load_processes(self) -> tuple[list[Process], bool]:
        """Bulk-load every process. Returns (processes, served_from_cache)."""
        if self._cache.has_significant_data():
            processes = self._cache.get_all(RecordClass.PROCESS)
            logger.info("Cache hit — serving %d cached processes", len(processes))
            return processes, True

        logger.info("Cache miss — loading processes from the store")
        token = self._cache.token(RecordClass.PROCESS)
        processes = await self._store.read_all_processes()
        if not self._cache.put_many_if_current((p for p in processes if p.key is not None), token):
            logger.info("Processes changed while loading — result not cached")
        return processes, False

    async def load_test(self, test_id: int) -> AutomationTest:
        cached = self._cache.get(RecordClass.TEST, test_id)
        if cached is not None:
            return cached
        token = self._cache.token(RecordClass.TEST)
        tests = await self._store.read_full_tests([test_id])
        if not tests:
            raise EntityNotFoundError("AutomationTest", test_id)
        self._cache.put_many_if_current(tests[:1], token)
        return tests[0]

    async def load_functions(self, process_id: float) -> list[Function]:
        """Return one process's functions, fetching the group on first request."""
        process_id = float(process_id)
        cached = self._cache.get_group(process_id)
        if cached is not None:
            return cached

        task = self._pending_groups.get(process_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch_group(process_id))
            self._pending_groups[process_id] = task
            task.add_done_callback(lambda t, pid=process_id: self._group_done(pid, t))
        return list(await asyncio.shield(task))

    async def close(self) -> None:
        """Cancel group reads still in flight."""
        tasks = list(self._pending_groups.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _fetch_group(self, process_id: float) -> list[Function]:
        functions: list[Function] = []
        for attempt in range(1, MAX_GROUP_READS + 1):
            token = self._cache.group_token(process_id)
            functions = await self._store.read_functions_for_process(process_id)
            stored = self._cache.put_group(
                process_id, (f for f in functions if f.key is not None), token=token,
            )
            if stored:
                logger.debug("Loaded %d functions for process %s", len(functions), process_id)
                return functions
            if token.generation != self._cache.generation:
                logger.info("Cache cleared while loading process %s — result not cached", process_id)
                return functions
            logger.debug(
                "Functions of process %s changed during read %d — reading again",
                process_id, attempt,
            )
        logger.warning(
            "Functions of process %s kept changing — returning uncached result", process_id,
        )
        return functions

    def _group_done(self, process_id: float, task: asyncio.Task) -> None:
        if self._pending_groups.get(process_id) is task:
            del self._pending_groups[process_id]
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Function group %s failed: %s", process_id, task.exception())
