"""Concrete record store backed by SQLAlchemy async sessions."""

import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession, async_sessionmaker

from recordsync.application.interfaces import RecordStore, Row
from recordsync.domain.entities import (
    FUNCTION_DIGEST_FIELDS,
    FUNCTION_PARAM_COUNT,
    PROCESS_DIGEST_FIELDS,
    PROCESS_PARAM_COUNT,
    TEST_DIGEST_FIELDS,
    AutomationTest,
    Function,
    FunctionKey,
    Process,
    ProcessKey,
    param_columns,
)
from recordsync.domain.exceptions import StoreUnavailableError
from recordsync.infrastructure.database.models import (
    functions_table,
    processes_table,
    tests_table,
)

logger = logging.getLogger(__name__)

_TEST_KEY_COLUMNS = ("test_id",)
_PROCESS_KEY_COLUMNS = ("test_id", "process_id")
_FUNCTION_KEY_COLUMNS = ("process_id", "function_position")

_PROCESS_PARAMS = param_columns(PROCESS_PARAM_COUNT)
_FUNCTION_PARAMS = param_columns(FUNCTION_PARAM_COUNT)


class SQLAlchemyRecordStore(RecordStore):
    """Implements the RecordStore port with one short-lived session per read.

    The lightweight reads select only key columns plus digest fields.
    Full reads are grouped: one query per owning test for processes and
    one per owning process for functions. Schema switching is applied via
    ``schema_translate_map``, so the same tables serve every dataset.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        schema: str | None = None,
    ):
        self._session_factory = session_factory
        self._schema = schema or None

    @property
    def schema(self) -> str | None:
        return self._schema

    def use_schema(self, schema: str | None) -> None:
        self._schema = schema or None
        logger.info("Record store now reading schema '%s'", self._schema or "<default>")

    # ── Lightweight field-sets ───────────────────────────────────────

    async def read_tests(self, test_ids: Iterable[int] | None = None) -> list[Row]:
        stmt = self._light_select(tests_table, _TEST_KEY_COLUMNS + TEST_DIGEST_FIELDS)
        if test_ids is not None:
            ids = sorted({int(i) for i in test_ids})
            if not ids:
                return []
            stmt = stmt.where(tests_table.c.test_id.in_(ids))
        return await self._fetch_rows("read_tests", [stmt])

    async def read_processes(self, test_ids: Iterable[int] | None = None) -> list[Row]:
        stmt = self._light_select(processes_table, _PROCESS_KEY_COLUMNS + PROCESS_DIGEST_FIELDS)
        if test_ids is not None:
            ids = sorted({int(i) for i in test_ids})
            if not ids:
                return []
            stmt = stmt.where(processes_table.c.test_id.in_(ids))
        return await self._fetch_rows("read_processes", [stmt])

    async def read_functions(
        self, process_ids: Iterable[float] | None = None
    ) -> list[Row]:
        stmt = self._light_select(functions_table, _FUNCTION_KEY_COLUMNS + FUNCTION_DIGEST_FIELDS)
        if process_ids is not None:
            ids = sorted({float(i) for i in process_ids})
            if not ids:
                return []
            stmt = stmt.where(functions_table.c.process_id.in_(ids))
        return await self._fetch_rows("read_functions", [stmt])

    # ── Full records ─────────────────────────────────────────────────

    async def read_full_tests(self, test_ids: Iterable[int]) -> list[AutomationTest]:
        ids = sorted({int(i) for i in test_ids})
        if not ids:
            return []
        stmt = (
            select(tests_table)
            .where(tests_table.c.test_id.in_(ids))
            .order_by(tests_table.c.test_id)
        )
        rows = await self._fetch_rows("read_full_tests", [stmt])
        return [self._to_test(row) for row in rows]

    async def read_full_processes(self, keys: Iterable[ProcessKey]) -> list[Process]:
        by_test: dict[int, set[float]] = defaultdict(set)
        for key in keys:
            by_test[int(key.test_id)].add(float(key.process_id))
        if not by_test:
            return []
        statements = [
            select(processes_table)
            .where(
                processes_table.c.test_id == test_id,
                processes_table.c.process_id.in_(sorted(process_ids)),
            )
            .order_by(processes_table.c.process_position, processes_table.c.process_id)
            for test_id, process_ids in sorted(by_test.items())
        ]
        rows = await self._fetch_rows("read_full_processes", statements)
        return [self._to_process(row) for row in rows]

    async def read_full_functions(self, keys: Iterable[FunctionKey]) -> list[Function]:
        by_process: dict[float, set[int]] = defaultdict(set)
        for key in keys:
            by_process[float(key.process_id)].add(int(key.function_position))
        if not by_process:
            return []
        statements = [
            select(functions_table)
            .where(
                functions_table.c.process_id == process_id,
                functions_table.c.function_position.in_(sorted(positions)),
            )
            .order_by(functions_table.c.function_position)
            for process_id, positions in sorted(by_process.items())
        ]
        rows = await self._fetch_rows("read_full_functions", statements)
        return [self._to_function(row) for row in rows]

    async def read_all_processes(self) -> list[Process]:
        stmt = select(processes_table).order_by(
            processes_table.c.test_id,
            processes_table.c.process_position,
            processes_table.c.process_id,
        )
        rows = await self._fetch_rows("read_all_processes", [stmt])
        return [self._to_process(row) for row in rows]

    async def read_functions_for_process(self, process_id: float) -> list[Function]:
        stmt = (
            select(functions_table)
            .where(functions_table.c.process_id == float(process_id))
            .order_by(functions_table.c.function_position)
        )
        rows = await self._fetch_rows("read_functions_for_process", [stmt])
        return [self._to_function(row) for row in rows]

    # ── Helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _light_select(table, columns: Sequence[str]) -> Select:
        return select(*(table.c[name] for name in columns))

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[AsyncConnection]:
        """Yield a connection bound to the active schema; wrap store failures."""
        options = {}
        if self._schema:
            options["schema_translate_map"] = {None: self._schema}
        try:
            async with self._session_factory() as session:
                yield await session.connection(execution_options=options or None)
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(operation, exc) from exc

    async def _fetch_rows(self, operation: str, statements: Sequence[Select]) -> list[Row]:
        rows: list[Row] = []
        async with self._connection(operation) as conn:
            for stmt in statements:
                result = await conn.execute(stmt)
                rows.extend(dict(m) for m in result.mappings())
        logger.debug("%s: %d rows", operation, len(rows))
        return rows

    @staticmethod
    def _to_test(row: Row) -> AutomationTest:
        """Map table row → domain entity."""
        return AutomationTest(
            test_id=row["test_id"],
            **{name: row[name] for name in TEST_DIGEST_FIELDS},
        )

    @staticmethod
    def _to_process(row: Row) -> Process:
        return Process(
            test_id=row["test_id"],
            process_id=row["process_id"],
            process_name=row["process_name"],
            process_position=row["process_position"],
            module=row["module"],
            index=row["index"],
            comments=row["comments"],
            last_running=row["last_running"],
            repeat=row["repeat"],
            web3_operator=row["web3_operator"],
            pass_fail_operator=row["pass_fail_operator"],
            temp_param=row["temp_param"],
            params=[row[name] for name in _PROCESS_PARAMS],
        )

    @staticmethod
    def _to_function(row: Row) -> Function:
        return Function(
            process_id=row["process_id"],
            function_position=row["function_position"],
            function_name=row["function_name"],
            function_description=row["function_description"],
            actual_value=row["actual_value"],
            break_point=row["break_point"],
            comments=row["comments"],
            index=row["index"],
            web3_operator=row["web3_operator"],
            pass_fail_operator=row["pass_fail_operator"],
            params=[row[name] for name in _FUNCTION_PARAMS],
        )
