"""Shared fixtures — an in-memory fake of the RecordStore port."""

import asyncio
import copy
import dataclasses
from collections.abc import Iterable

import pytest

from recordsync.application.interfaces import RecordStore, Row
from recordsync.domain.entities import (
    AutomationTest,
    Function,
    FunctionKey,
    Process,
    ProcessKey,
    param_columns,
)
from recordsync.domain.exceptions import StoreUnavailableError


def _row(record) -> dict:
    row = dataclasses.asdict(record)
    params = row.pop("params", None)
    if params is not None:
        row.update(zip(param_columns(len(params)), params))
    return row


class FakeRecordStore(RecordStore):
    """In-memory fake store that counts reads and can fail or block on demand."""

    def __init__(self):
        self.tests: dict[int, AutomationTest] = {}
        self.processes: dict[ProcessKey, Process] = {}
        self.functions: dict[FunctionKey, Function] = {}
        self.extra_rows: dict[str, list[Row]] = {"tests": [], "processes": [], "functions": []}
        self.calls: dict[str, int] = {}
        self.requested: dict[str, list] = {}
        self.fail_next = 0
        self.gate: asyncio.Event | None = None
        self.schema: str | None = None

    # ── Seeding / editing helpers ────────────────────────────────────

    def add_test(self, test_id: int, **fields) -> AutomationTest:
        test = AutomationTest(test_id=test_id, **fields)
        self.tests[test.key] = test
        return test

    def add_process(self, test_id: int, process_id: float, **fields) -> Process:
        process = Process(test_id=test_id, process_id=process_id, **fields)
        self.processes[process.key] = process
        return process

    def add_function(self, process_id: float, position: int, **fields) -> Function:
        function = Function(process_id=process_id, function_position=position, **fields)
        self.functions[function.key] = function
        return function

    # ── Instrumentation ──────────────────────────────────────────────

    async def _enter(self, name: str, requested=None) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if requested is not None:
            self.requested.setdefault(name, []).append(requested)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next -= 1
            raise StoreUnavailableError(name, ConnectionError("store offline"))

    def count(self, name: str) -> int:
        return self.calls.get(name, 0)

    @property
    def full_reads(self) -> int:
        return sum(
            self.count(n)
            for n in ("read_full_tests", "read_full_processes", "read_full_functions")
        )

    # ── RecordStore ──────────────────────────────────────────────────

    async def read_tests(self, test_ids: Iterable[int] | None = None) -> list[Row]:
        await self._enter("read_tests")
        wanted = None if test_ids is None else set(test_ids)
        rows = [_row(t) for k, t in self.tests.items() if wanted is None or k in wanted]
        return rows + list(self.extra_rows["tests"])

    async def read_processes(self, test_ids: Iterable[int] | None = None) -> list[Row]:
        await self._enter("read_processes")
        wanted = None if test_ids is None else set(test_ids)
        rows = [
            _row(p) for k, p in self.processes.items()
            if wanted is None or k.test_id in wanted
        ]
        return rows + list(self.extra_rows["processes"])

    async def read_functions(self, process_ids: Iterable[float] | None = None) -> list[Row]:
        await self._enter("read_functions")
        wanted = None if process_ids is None else {float(p) for p in process_ids}
        rows = [
            _row(f) for k, f in self.functions.items()
            if wanted is None or k.process_id in wanted
        ]
        return rows + list(self.extra_rows["functions"])

    async def read_full_tests(self, test_ids: Iterable[int]) -> list[AutomationTest]:
        ids = list(test_ids)
        await self._enter("read_full_tests", ids)
        return [copy.deepcopy(self.tests[i]) for i in ids if i in self.tests]

    async def read_full_processes(self, keys: Iterable[ProcessKey]) -> list[Process]:
        keys = list(keys)
        await self._enter("read_full_processes", keys)
        return [copy.deepcopy(self.processes[k]) for k in keys if k in self.processes]

    async def read_full_functions(self, keys: Iterable[FunctionKey]) -> list[Function]:
        keys = list(keys)
        await self._enter("read_full_functions", keys)
        return [copy.deepcopy(self.functions[k]) for k in keys if k in self.functions]

    async def read_all_processes(self) -> list[Process]:
        await self._enter("read_all_processes")
        return [copy.deepcopy(p) for _, p in sorted(self.processes.items())]

    async def read_functions_for_process(self, process_id: float) -> list[Function]:
        await self._enter("read_functions_for_process", float(process_id))
        return [
            copy.deepcopy(f) for k, f in sorted(self.functions.items())
            if k.process_id == float(process_id)
        ]

    def use_schema(self, schema: str | None) -> None:
        self.schema = schema


@pytest.fixture
def store() -> FakeRecordStore:
    """A small hierarchy: two tests, three processes, four functions."""
    fake = FakeRecordStore()
    fake.add_test(1, test_name="Login", run_status="V")
    fake.add_test(2, test_name="Checkout", run_status="V")
    fake.add_process(1, 1.0, process_name="Open browser", process_position=1.0)
    fake.add_process(1, 2.0, process_name="Enter credentials", process_position=2.0)
    fake.add_process(2, 3.5, process_name="Pay", process_position=1.0)
    fake.add_function(1.0, 1, function_name="Navigate")
    fake.add_function(1.0, 2, function_name="WaitForPage")
    fake.add_function(2.0, 1, function_name="TypeUser")
    fake.add_function(3.5, 1, function_name="ClickPay")
    return fake
