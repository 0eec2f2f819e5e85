"""Abstract read port (store reader) for the test / process / function tables."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from recordsync.domain.entities import (
    AutomationTest,
    Function,
    FunctionKey,
    Process,
    ProcessKey,
)

Row = Mapping[str, Any]


class RecordStore(ABC):
    """Port for reading the record hierarchy — implemented in the infrastructure layer.

    Pure reads: no caching, no diffing. The lightweight ``read_*`` methods
    return flat field-sets holding the key columns plus the digest fields
    of each class; the ``read_full_*`` methods return domain records for
    the given identities only.
    """

    @abstractmethod
    async def read_tests(self, test_ids: Iterable[int] | None = None) -> list[Row]:
        """Lightweight field-sets for tests, optionally filtered by id."""
        ...

    @abstractmethod
    async def read_processes(self, test_ids: Iterable[int] | None = None) -> list[Row]:
        """Lightweight field-sets for processes, optionally filtered by owning test."""
        ...

    @abstractmethod
    async def read_functions(
        self, process_ids: Iterable[float] | None = None
    ) -> list[Row]:
        """Lightweight field-sets for functions, optionally filtered by owning process."""
        ...

    @abstractmethod
    async def read_full_tests(self, test_ids: Iterable[int]) -> list[AutomationTest]:
        """Full test records for the given ids."""
        ...

    @abstractmethod
    async def read_full_processes(self, keys: Iterable[ProcessKey]) -> list[Process]:
        """Full process records for the given identities."""
        ...

    @abstractmethod
    async def read_full_functions(self, keys: Iterable[FunctionKey]) -> list[Function]:
        """Full function records for the given identities."""
        ...

    @abstractmethod
    async def read_all_processes(self) -> list[Process]:
        """Every process, without functions (bulk display load)."""
        ...

    @abstractmethod
    async def read_functions_for_process(self, process_id: float) -> list[Function]:
        """All functions of one process, ordered by position (lazy group load)."""
        ...

    @abstractmethod
    def use_schema(self, schema: str | None) -> None:
        """Point subsequent reads at a different logical dataset."""
        ...
