"""Background preloader — warms function groups after the initial display load."""

import asyncio
import logging
from collections.abc import Iterable

from recordsync.application.services.record_loader import RecordLoader
from recordsync.infrastructure.logging.colored_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
slog = SyncLogger("FunctionPreloader")

DEFAULT_BATCH_SIZE = 10
DEFAULT_PAUSE_SECONDS = 0.1
PROGRESS_LOG_EVERY = 100


class FunctionPreloader:
    """Work queue of process ids drained by one throttled worker task.

    The worker pauses after every ``batch_size`` store fetches so a large
    preload never monopolizes the store. Groups the shared cache already
    holds are skipped without a store read. ``stop`` cancels the worker
    and drops whatever is still queued.
    """

    def __init__(
        self,
        loader: RecordLoader,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        pause: float = DEFAULT_PAUSE_SECONDS,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._loader = loader
        self._batch_size = batch_size
        self._pause = max(0.0, pause)
        self._queue: asyncio.Queue[float] = asyncio.Queue()
        self._queued: set[float] = set()
        self._task: asyncio.Task | None = None
        self.loaded = 0
        self.skipped = 0
        self.failed = 0

    def enqueue(self, process_ids: Iterable[float]) -> int:
        """Queue process ids for preloading. Returns how many were newly queued."""
        added = 0
        for process_id in process_ids:
            if process_id is None:
                continue
            process_id = float(process_id)
            if process_id in self._queued:
                continue
            self._queued.add(process_id)
            self._queue.put_nowait(process_id)
            added += 1
        return added

    def start(self) -> None:
        if self.is_running():
            return
        self._task = asyncio.create_task(self._worker())
        slog.step_start(SyncStage.PRELOAD, "Background preload started", queued=self.pending)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._drain()

    async def join(self) -> None:
        """Wait until the queue is fully processed."""
        if self._task is not None:
            await self._task

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def _worker(self) -> None:
        fetched_since_pause = 0
        total = self._queue.qsize()
        while not self._queue.empty():
            process_id = self._queue.get_nowait()
            self._queued.discard(process_id)

            if self._loader.cache.is_group_loaded(process_id):
                self.skipped += 1
                continue

            try:
                await self._loader.load_functions(process_id)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.failed += 1
                logger.warning("Preload failed for process %s: %s", process_id, exc)
                continue

            self.loaded += 1
            fetched_since_pause += 1
            if self.loaded % PROGRESS_LOG_EVERY == 0:
                slog.detail(f"Preloaded {self.loaded}/{total} function groups")
            if fetched_since_pause >= self._batch_size:
                fetched_since_pause = 0
                await asyncio.sleep(self._pause)

        slog.step_complete(
            SyncStage.PRELOAD, "Background preload completed",
            loaded=self.loaded, skipped=self.skipped, failed=self.failed,
        )

    def _drain(self) -> None:
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            dropped += 1
        self._queued.clear()
        if dropped:
            logger.info("Preload stopped — %d queued groups dropped", dropped)
