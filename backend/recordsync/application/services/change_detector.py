"""Differential detector and the watcher's retained snapshot store."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from recordsync.domain.entities import Identity, RecordClass

logger = logging.getLogger(__name__)

Snapshot = Mapping[Identity, str]


@dataclass(frozen=True)
class SnapshotDiff:
    """Result of comparing two snapshots of one record class.

    Unchanged identities appear in none of the sets, so the size of a diff
    tracks the number of real changes rather than the table size.
    """

    added: frozenset
    changed: frozenset
    deleted: frozenset

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.changed or self.deleted)

    @property
    def upserted(self) -> frozenset:
        """Identities that need a full-record fetch (added + changed)."""
        return self.added | self.changed


EMPTY_DIFF = SnapshotDiff(frozenset(), frozenset(), frozenset())


def diff_snapshots(previous: Snapshot, current: Snapshot) -> SnapshotDiff:
    """Classify every identity as added, changed or deleted.

    - added:   in ``current`` only
    - changed: in both, with a different digest
    - deleted: in ``previous`` only
    """
    added = frozenset(k for k in current if k not in previous)
    changed = frozenset(
        k for k, digest in current.items() if k in previous and previous[k] != digest
    )
    deleted = frozenset(k for k in previous if k not in current)
    return SnapshotDiff(added=added, changed=changed, deleted=deleted)


class SnapshotStore:
    """What the watcher last saw: identity → digest per record class.

    Single writer (the watcher). ``commit`` swaps in a complete new mapping
    per class; entries are never merged or patched in place.
    """

    def __init__(self) -> None:
        self._snapshots: dict[RecordClass, dict[Identity, str]] = {}

    @property
    def has_baseline(self) -> bool:
        return bool(self._snapshots)

    def get(self, record_class: RecordClass) -> Snapshot:
        """Read-only view of the retained snapshot for one class."""
        return MappingProxyType(self._snapshots.get(record_class, {}))

    def diff(self, record_class: RecordClass, current: Snapshot) -> SnapshotDiff:
        return diff_snapshots(self._snapshots.get(record_class, {}), current)

    def commit(self, snapshots: Mapping[RecordClass, Snapshot]) -> None:
        """Replace the retained snapshot of every given class in one step."""
        replaced = dict(self._snapshots)
        for record_class, snapshot in snapshots.items():
            replaced[record_class] = dict(snapshot)
        self._snapshots = replaced
        logger.debug(
            "Snapshot committed: %s",
            {rc.value: len(s) for rc, s in replaced.items()},
        )

    def clear(self) -> None:
        self._snapshots = {}
