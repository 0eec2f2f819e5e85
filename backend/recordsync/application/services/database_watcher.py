"""Database Watcher — asyncio daemon that polls the record store for external changes."""

import asyncio
import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from recordsync.application.interfaces import RecordStore
from recordsync.application.services.change_broadcaster import ChangeEventBroadcaster
from recordsync.application.services.change_detector import (
    Snapshot,
    SnapshotDiff,
    SnapshotStore,
)
from recordsync.application.services.fingerprint import FINGERPRINTERS
from recordsync.domain.entities import ChangeSet, ClassDelta, Identity, RecordClass
from recordsync.infrastructure.logging.colored_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
slog = SyncLogger("DatabaseWatcher")

DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_INITIAL_DELAY = 1.0


class WatcherState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class WatcherStatistics:
    passes_run: int = 0
    passes_skipped: int = 0
    passes_failed: int = 0
    passes_discarded: int = 0
    events_emitted: int = 0
    last_pass_at: datetime | None = None
    last_error: str | None = None


class DatabaseWatcher:
    """Polls the store on a fixed interval and publishes one ChangeSet per real change.

    Each sampling pass reads lightweight field-sets for tests, processes
    and functions, fingerprints them, diffs them against the retained
    snapshot and — only when something changed — fetches full records for
    the added and changed identities before publishing a single event.

    Passes never overlap: a scheduled tick that finds a pass in flight is
    skipped, and ``check_now`` waits its turn. ``stop`` does not wait for
    an in-flight pass; that pass runs to completion but its results are
    discarded. Failures are logged and treated as "no changes this tick";
    the retained snapshot is only replaced by a fully successful pass.
    """

    def __init__(
        self,
        store: RecordStore,
        broadcaster: ChangeEventBroadcaster,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        emit_initial_snapshot: bool = False,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._poll_interval = self._validate_interval(poll_interval)
        self._initial_delay = max(0.0, initial_delay)
        self._emit_initial_snapshot = emit_initial_snapshot
        self._snapshots = SnapshotStore()
        self._lock = asyncio.Lock()
        self._state = WatcherState.STOPPED
        self._task: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._epoch = 0
        self._sequence = 0
        self._stats = WatcherStatistics()

    # ── Control surface ──────────────────────────────────────────────

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @poll_interval.setter
    def poll_interval(self, seconds: float) -> None:
        self._poll_interval = self._validate_interval(seconds)
        logger.info("Polling interval set to %.2fs", self._poll_interval)

    @property
    def state(self) -> WatcherState:
        return self._state

    def is_running(self) -> bool:
        return self._state is WatcherState.RUNNING

    async def start(self) -> None:
        """Start the polling loop. Calling it while running is a no-op."""
        if self.is_running():
            logger.warning("DatabaseWatcher already running")
            return
        self._state = WatcherState.RUNNING
        self._task = asyncio.create_task(self._loop())
        slog.step_complete(
            SyncStage.WATCHER, "DatabaseWatcher started",
            interval=f"{self._poll_interval}s",
        )

    async def stop(self) -> None:
        """Stop polling. An in-flight pass finishes but its results are dropped."""
        if not self.is_running():
            return
        self._state = WatcherState.STOPPED
        self._epoch += 1
        task, self._task = self._task, None
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        slog.step_complete(SyncStage.WATCHER, "DatabaseWatcher stopped")

    async def check_now(self) -> ChangeSet | None:
        """Run one sampling pass immediately (waits for an in-flight pass first).

        Returns the published ChangeSet, or None when nothing changed, the
        pass failed, or its results were discarded.
        """
        return await self._sample(self._epoch)

    def reset(self) -> None:
        """Forget all retained snapshots; the next pass re-baselines.

        An in-flight pass is discarded.
        """
        self._epoch += 1
        self._snapshots.clear()
        logger.info("DatabaseWatcher snapshots reset")

    def snapshot(self, record_class: RecordClass) -> Mapping[Identity, str]:
        """Read-only view of the retained identity → digest snapshot."""
        return self._snapshots.get(record_class)

    def statistics(self) -> WatcherStatistics:
        return dataclasses.replace(self._stats)

    # ── Loop ─────────────────────────────────────────────────────────

    async def _loop(self) -> None:
        """Main polling loop — one sampling pass per tick."""
        try:
            await asyncio.sleep(self._initial_delay)
            while self.is_running():
                if self._lock.locked():
                    self._stats.passes_skipped += 1
                    slog.quiet("Tick skipped — previous pass still running")
                else:
                    # The pass runs in its own task so cancelling the loop
                    # does not interrupt a pass midway.
                    pass_task = asyncio.create_task(self._sample(self._epoch))
                    self._in_flight.add(pass_task)
                    pass_task.add_done_callback(self._in_flight.discard)
                    await asyncio.shield(pass_task)
                await asyncio.sleep(self._poll_interval)
        except asyncio.CancelledError:
            pass

    # ── Sampling pass ────────────────────────────────────────────────

    async def _sample(self, epoch: int) -> ChangeSet | None:
        async with self._lock:
            self._stats.passes_run += 1
            self._stats.last_pass_at = datetime.now(timezone.utc)
            try:
                return await self._run_pass(epoch)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self._stats.passes_failed += 1
                self._stats.last_error = f"{type(exc).__name__}: {exc}"
                slog.step_error(SyncStage.ERROR, "Sampling pass failed — snapshot kept", error=exc)
                return None

    async def _run_pass(self, epoch: int) -> ChangeSet | None:
        current = await self._read_current()
        baseline = not self._snapshots.has_baseline

        if baseline and not self._emit_initial_snapshot:
            if self._discard_if_stale(epoch):
                return None
            self._snapshots.commit(current)
            slog.step_complete(
                SyncStage.DIFF, "Baseline snapshot captured",
                **{rc.value: len(s) for rc, s in current.items()},
            )
            return None

        diffs = {rc: self._snapshots.diff(rc, snapshot) for rc, snapshot in current.items()}
        if all(d.is_empty for d in diffs.values()):
            if baseline and not self._discard_if_stale(epoch):
                self._snapshots.commit(current)
            slog.quiet("No database changes detected")
            return None

        for rc, d in diffs.items():
            if not d.is_empty:
                slog.detail(
                    f"{rc.value}: +{len(d.added)} ~{len(d.changed)} -{len(d.deleted)}"
                )

        records = await self._fetch_changed(diffs)
        change_set = ChangeSet(
            sequence=self._sequence + 1,
            tests=self._delta(diffs[RecordClass.TEST], records[RecordClass.TEST]),
            processes=self._delta(diffs[RecordClass.PROCESS], records[RecordClass.PROCESS]),
            functions=self._delta(diffs[RecordClass.FUNCTION], records[RecordClass.FUNCTION]),
        )

        if self._discard_if_stale(epoch):
            return None

        # Commit before publishing: anyone reacting to the event sees the
        # snapshot the event was computed against.
        self._snapshots.commit(current)
        self._sequence = change_set.sequence
        self._broadcaster.publish(change_set)
        self._stats.events_emitted += 1
        slog.step_complete(
            SyncStage.EMIT, f"Change event #{change_set.sequence} published",
            changes=change_set.total_changes,
        )
        return change_set

    async def _read_current(self) -> dict[RecordClass, Snapshot]:
        test_rows = await self._store.read_tests()
        process_rows = await self._store.read_processes()
        function_rows = await self._store.read_functions()
        return {
            RecordClass.TEST: FINGERPRINTERS[RecordClass.TEST].build_snapshot(test_rows),
            RecordClass.PROCESS: FINGERPRINTERS[RecordClass.PROCESS].build_snapshot(process_rows),
            RecordClass.FUNCTION: FINGERPRINTERS[RecordClass.FUNCTION].build_snapshot(function_rows),
        }

    async def _fetch_changed(
        self, diffs: Mapping[RecordClass, SnapshotDiff]
    ) -> dict[RecordClass, dict[Identity, object]]:
        """Fetch full records for added + changed identities only."""
        fetched: dict[RecordClass, dict[Identity, object]] = {rc: {} for rc in RecordClass}
        readers = {
            RecordClass.TEST: self._store.read_full_tests,
            RecordClass.PROCESS: self._store.read_full_processes,
            RecordClass.FUNCTION: self._store.read_full_functions,
        }
        for rc, d in diffs.items():
            wanted = d.upserted
            if not wanted:
                continue
            with slog.timed_step(SyncStage.FETCH, f"Fetching {len(wanted)} {rc.value} records"):
                rows = await readers[rc](sorted(wanted))
            for record in rows:
                if record.key in wanted:
                    fetched[rc][record.key] = record
            missing = len(wanted) - len(fetched[rc])
            if missing:
                logger.debug("%d %s records vanished before full fetch", missing, rc.value)
        return fetched

    @staticmethod
    def _delta(diff: SnapshotDiff, records: dict[Identity, object]) -> ClassDelta:
        return ClassDelta(
            added=diff.added,
            changed=diff.changed,
            deleted=diff.deleted,
            records=records,
        )

    def _discard_if_stale(self, epoch: int) -> bool:
        if epoch == self._epoch:
            return False
        self._stats.passes_discarded += 1
        logger.info("Sampling pass finished after stop/reset — results discarded")
        return True

    @staticmethod
    def _validate_interval(seconds: float) -> float:
        if seconds is None or seconds <= 0:
            raise ValueError(f"Polling interval must be positive, got {seconds!r}")
        return float(seconds)
