"""In-memory consumer view patched from watcher change events."""

import logging
from collections.abc import Iterable

from recordsync.domain.entities import ChangeSet, Identity, RecordClass

logger = logging.getLogger(__name__)


class RecordView:
    """What a display consumer currently shows, keyed by identity.

    Applying a ChangeSet removes deleted identities and upserts added or
    changed records in place; nothing else is reloaded. Transient,
    consumer-owned state (which rows are expanded) is keyed by identity and
    survives every patch unless the identity itself is deleted.
    """

    def __init__(self) -> None:
        self._rows: dict[RecordClass, dict[Identity, object]] = {rc: {} for rc in RecordClass}
        self._expanded: dict[RecordClass, set[Identity]] = {rc: set() for rc in RecordClass}
        self.last_sequence = 0

    def load(self, record_class: RecordClass, records: Iterable) -> None:
        """Replace the rows of one class (initial display load)."""
        self._rows[record_class] = {r.key: r for r in records if r.key is not None}
        self._expanded[record_class] &= self._rows[record_class].keys()

    def rows(self, record_class: RecordClass) -> list:
        return [self._rows[record_class][k] for k in sorted(self._rows[record_class])]

    def get(self, record_class: RecordClass, key: Identity) -> object | None:
        return self._rows[record_class].get(key)

    def set_expanded(self, record_class: RecordClass, key: Identity, expanded: bool = True) -> None:
        if expanded:
            self._expanded[record_class].add(key)
        else:
            self._expanded[record_class].discard(key)

    def is_expanded(self, record_class: RecordClass, key: Identity) -> bool:
        return key in self._expanded[record_class]

    def apply(self, change_set: ChangeSet) -> None:
        """Patch the view with one change event."""
        if change_set.sequence <= self.last_sequence:
            logger.debug("Ignoring stale change event #%d", change_set.sequence)
            return
        for record_class in RecordClass:
            delta = change_set.delta(record_class)
            rows = self._rows[record_class]
            for key in delta.deleted:
                rows.pop(key, None)
                self._expanded[record_class].discard(key)
            for record in delta.upserts():
                rows[record.key] = record
        self.last_sequence = change_set.sequence
