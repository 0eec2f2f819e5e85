"""Shared record cache — de-duplicates loads across independent consumers.

One instance is created per process and handed to every consumer (the
watcher's change listener, the record loader, the background preloader).
There is no eviction: staleness is corrected by applying the watcher's
change events, not by expiry.
"""

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from recordsync.domain.entities import (
    AutomationTest,
    ChangeSet,
    Function,
    FunctionKey,
    Identity,
    Process,
    RecordClass,
)
from recordsync.domain.exceptions import InvalidIdentityError

logger = logging.getLogger(__name__)

DEFAULT_SIGNIFICANT_THRESHOLD = 100

_RECORD_CLASSES: dict[type, RecordClass] = {
    AutomationTest: RecordClass.TEST,
    Process: RecordClass.PROCESS,
    Function: RecordClass.FUNCTION,
}


@dataclass
class CacheStatistics:
    """Point-in-time counters for the shared cache."""

    tests: int = 0
    processes: int = 0
    functions: int = 0
    duplicate_puts: int = 0
    groups_loaded: int = 0
    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return (self.hits / total) * 100 if total else 0.0


@dataclass(frozen=True)
class CacheToken:
    """Cache state observed before a store read.

    ``scope`` is a RecordClass for bulk loads or a process id for a
    function group. A write guarded by a token is dropped when the cache
    was cleared or a change event touched that scope in the meantime.
    """

    generation: int
    scope: RecordClass | float
    revision: int


class RecordCache:
    """Thread-safe keyed storage for full test / process / function records.

    - At most one record per identity per class; a repeated put for the
      same identity replaces the earlier record (last write wins).
    - Functions are also indexed by their owning process id so a whole
      group can be served at once; ``is_group_loaded`` tells a consumer
      whether that group was ever fully fetched.
    - Hit / miss counters track reads only.

    Every operation takes an internal re-entrant lock, so callers from
    asyncio tasks and worker threads need no external locking.
    """

    def __init__(self, significant_threshold: int = DEFAULT_SIGNIFICANT_THRESHOLD) -> None:
        self._lock = threading.RLock()
        self._significant_threshold = significant_threshold
        self._records: dict[RecordClass, dict[Identity, object]] = {rc: {} for rc in RecordClass}
        self._groups: dict[float, dict[FunctionKey, Function]] = {}
        self._loaded_groups: set[float] = set()
        self._duplicate_puts = 0
        self._hits = 0
        self._misses = 0
        self._generation = 0
        self._revisions: dict[RecordClass, int] = {rc: 0 for rc in RecordClass}
        self._group_revisions: dict[float, int] = {}

    # ── Write tokens ─────────────────────────────────────────────────

    @property
    def generation(self) -> int:
        """Bumped by every ``clear()``."""
        with self._lock:
            return self._generation

    def token(self, record_class: RecordClass) -> CacheToken:
        with self._lock:
            return CacheToken(self._generation, record_class, self._revisions[record_class])

    def group_token(self, process_id: float) -> CacheToken:
        group_key = self._check_group(process_id)
        with self._lock:
            return CacheToken(
                self._generation, group_key, self._group_revisions.get(group_key, 0),
            )

    def is_current(self, token: CacheToken) -> bool:
        with self._lock:
            return self._is_current(token)

    def _is_current(self, token: CacheToken) -> bool:
        if token.generation != self._generation:
            return False
        if isinstance(token.scope, RecordClass):
            return token.revision == self._revisions[token.scope]
        return token.revision == self._group_revisions.get(token.scope, 0)

    # ── Writes ───────────────────────────────────────────────────────

    def put(self, record: AutomationTest | Process | Function) -> None:
        """Insert or replace a record keyed by its identity."""
        record_class, key = self._identify(record)
        with self._lock:
            self._store(record_class, key, record)

    def put_many(self, records: Iterable[AutomationTest | Process | Function]) -> int:
        """Insert or replace many records. Returns the number stored."""
        prepared = [(*self._identify(r), r) for r in records]
        with self._lock:
            for record_class, key, record in prepared:
                self._store(record_class, key, record)
        if prepared:
            logger.debug("Cache: stored %d records", len(prepared))
        return len(prepared)

    def put_many_if_current(
        self,
        records: Iterable[AutomationTest | Process | Function],
        token: CacheToken,
    ) -> bool:
        """Like ``put_many``, but store nothing when ``token`` is stale."""
        prepared = [(*self._identify(r), r) for r in records]
        with self._lock:
            if not self._is_current(token):
                logger.debug("Cache: dropped %d records read before a change", len(prepared))
                return False
            for record_class, key, record in prepared:
                self._store(record_class, key, record)
        return True

    def remove(self, record_class: RecordClass, key: Identity) -> bool:
        self._check_key(record_class, key)
        with self._lock:
            existed = self._records[record_class].pop(key, None) is not None
            if record_class is RecordClass.FUNCTION:
                group = self._groups.get(key.process_id)
                if group is not None:
                    group.pop(key, None)
            return existed

    def _store(self, record_class: RecordClass, key: Identity, record: object) -> None:
        bucket = self._records[record_class]
        if key in bucket:
            self._duplicate_puts += 1
        bucket[key] = record
        if record_class is RecordClass.FUNCTION:
            self._groups.setdefault(key.process_id, {})[key] = record

    # ── Reads ────────────────────────────────────────────────────────

    def get(self, record_class: RecordClass, key: Identity) -> object | None:
        """Return the cached record, or None on a miss."""
        self._check_key(record_class, key)
        with self._lock:
            record = self._records[record_class].get(key)
            if record is None:
                self._misses += 1
            else:
                self._hits += 1
            return record

    def contains(self, record_class: RecordClass, key: Identity) -> bool:
        self._check_key(record_class, key)
        with self._lock:
            return key in self._records[record_class]

    def get_all(self, record_class: RecordClass) -> list:
        """Every cached record of one class, in first-insertion order."""
        with self._lock:
            return list(self._records[record_class].values())

    def count(self, record_class: RecordClass) -> int:
        with self._lock:
            return len(self._records[record_class])

    # ── Lazy-load groups (functions per process) ─────────────────────

    def put_group(
        self,
        process_id: float,
        functions: Iterable[Function],
        *,
        token: CacheToken | None = None,
    ) -> bool:
        """Store a fully fetched function group and mark it loaded.

        With a ``token`` from ``group_token`` the group is only stored if
        the cache was not cleared and no change event touched the group
        since the token was taken. Returns whether the group was stored.
        """
        functions = list(functions)
        with self._lock:
            if token is not None and not self._is_current(token):
                return False
            self.put_many(functions)
            self.mark_group_loaded(process_id)
            return True

    def get_group(self, process_id: float) -> list[Function] | None:
        """Functions of one process ordered by position, or None if never loaded."""
        group_key = self._check_group(process_id)
        with self._lock:
            if group_key not in self._loaded_groups:
                self._misses += 1
                return None
            self._hits += 1
            group = self._groups.get(group_key, {})
            return [group[k] for k in sorted(group)]

    def mark_group_loaded(self, process_id: float) -> None:
        group_key = self._check_group(process_id)
        with self._lock:
            self._loaded_groups.add(group_key)
            self._groups.setdefault(group_key, {})

    def is_group_loaded(self, process_id: float) -> bool:
        group_key = self._check_group(process_id)
        with self._lock:
            return group_key in self._loaded_groups

    # ── Change events ────────────────────────────────────────────────

    def apply_change_set(self, change_set: ChangeSet) -> None:
        """Patch the cache from a watcher event: drop deleted, upsert the rest.

        Only classes that already hold data are patched, so an event never
        makes an unloaded cache look populated. Upserted functions are
        only stored for groups that were already loaded. Every touched
        class and function group gets a new revision, which invalidates
        tokens held by loads still in flight.
        """
        with self._lock:
            for record_class in RecordClass:
                delta = change_set.delta(record_class)
                if delta.is_empty:
                    continue
                self._revisions[record_class] += 1
                if record_class is RecordClass.FUNCTION:
                    for key in delta.added | delta.changed | delta.deleted:
                        self._group_revisions[key.process_id] = (
                            self._group_revisions.get(key.process_id, 0) + 1
                        )
                for key in delta.deleted:
                    self.remove(record_class, key)
                if record_class is RecordClass.FUNCTION:
                    upserts = [
                        f for f in delta.upserts()
                        if f.key.process_id in self._loaded_groups
                    ]
                elif self._records[record_class]:
                    upserts = delta.upserts()
                else:
                    upserts = []
                for record in upserts:
                    self._store(record_class, record.key, record)
        logger.debug("Cache patched from change event #%d", change_set.sequence)

    # ── Housekeeping ─────────────────────────────────────────────────

    def has_significant_data(self) -> bool:
        """Heuristic: is the process cache full enough to skip a bulk load?

        A size threshold only — it says nothing about completeness.
        """
        with self._lock:
            return len(self._records[RecordClass.PROCESS]) > self._significant_threshold

    def clear(self) -> None:
        """Drop every record, group flag and counter, and start a new generation."""
        with self._lock:
            self._generation += 1
            self._group_revisions.clear()
            for bucket in self._records.values():
                bucket.clear()
            self._groups.clear()
            self._loaded_groups.clear()
            self._duplicate_puts = 0
            self._hits = 0
            self._misses = 0
        logger.info("RecordCache cleared")

    def statistics(self) -> CacheStatistics:
        with self._lock:
            counts = {rc.value: len(b) for rc, b in self._records.items()}
            return CacheStatistics(
                tests=counts[RecordClass.TEST.value],
                processes=counts[RecordClass.PROCESS.value],
                functions=counts[RecordClass.FUNCTION.value],
                duplicate_puts=self._duplicate_puts,
                groups_loaded=len(self._loaded_groups),
                hits=self._hits,
                misses=self._misses,
            )

    def log_statistics(self) -> None:
        stats = self.statistics()
        logger.info(
            "RecordCache: tests=%d processes=%d functions=%d groups=%d "
            "duplicates=%d hits=%d misses=%d hit_rate=%.1f%%",
            stats.tests, stats.processes, stats.functions, stats.groups_loaded,
            stats.duplicate_puts, stats.hits, stats.misses, stats.hit_rate,
        )

    # ── Contract checks ──────────────────────────────────────────────

    @staticmethod
    def _identify(record: object) -> tuple[RecordClass, Identity]:
        record_class = _RECORD_CLASSES.get(type(record))
        if record_class is None:
            raise InvalidIdentityError(type(record).__name__, "not a cacheable record type")
        key = record.key
        if key is None:
            raise InvalidIdentityError(record_class.value)
        return record_class, key

    @staticmethod
    def _check_key(record_class: RecordClass, key: Identity) -> None:
        if key is None:
            raise InvalidIdentityError(record_class.value)

    @staticmethod
    def _check_group(process_id: float) -> float:
        if process_id is None:
            raise InvalidIdentityError(RecordClass.FUNCTION.value, "group process id is missing")
        return float(process_id)
