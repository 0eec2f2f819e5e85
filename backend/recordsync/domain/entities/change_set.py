"""Domain entity for one aggregated change event produced by a sampling pass."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from .keys import Identity, RecordClass, identity_parts


@dataclass(frozen=True)
class ClassDelta:
    """Changes detected for a single record class.

    ``records`` holds the freshly fetched full record for every added and
    changed identity. Deleted identities carry no record.
    """

    added: frozenset = frozenset()
    changed: frozenset = frozenset()
    deleted: frozenset = frozenset()
    records: dict[Identity, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.changed or self.deleted)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.changed) + len(self.deleted)

    def upserts(self) -> list[Any]:
        """Full records for added + changed identities, in identity order."""
        return [self.records[k] for k in sorted(self.added | self.changed) if k in self.records]

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": [identity_parts(k) for k in sorted(self.added)],
            "changed": [identity_parts(k) for k in sorted(self.changed)],
            "deleted": [identity_parts(k) for k in sorted(self.deleted)],
            "records": [asdict(r) for r in self.upserts()],
        }


@dataclass(frozen=True)
class ChangeSet:
    """One batched delta across tests, processes and functions."""

    sequence: int
    tests: ClassDelta = field(default_factory=ClassDelta)
    processes: ClassDelta = field(default_factory=ClassDelta)
    functions: ClassDelta = field(default_factory=ClassDelta)
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def delta(self, record_class: RecordClass) -> ClassDelta:
        return {
            RecordClass.TEST: self.tests,
            RecordClass.PROCESS: self.processes,
            RecordClass.FUNCTION: self.functions,
        }[record_class]

    @property
    def is_empty(self) -> bool:
        return self.tests.is_empty and self.processes.is_empty and self.functions.is_empty

    @property
    def total_changes(self) -> int:
        return self.tests.total + self.processes.total + self.functions.total

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form with composite identities decomposed."""
        return {
            "sequence": self.sequence,
            "detected_at": self.detected_at.isoformat(),
            "tests": self.tests.to_dict(),
            "processes": self.processes.to_dict(),
            "functions": self.functions.to_dict(),
        }
