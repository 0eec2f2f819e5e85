"""Fingerprint builder — turns a raw store row into (identity, digest).

The identity is derived from key columns only. The digest is a fixed-width
BLAKE2b hash over the ordered digest fields of the record class, so any
edit to a tracked column changes it while unmodified rows hash identically
on every read.
"""

import hashlib
import logging
import math
from collections.abc import Callable, Iterable
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from recordsync.application.interfaces import Row
from recordsync.domain.entities import (
    FUNCTION_DIGEST_FIELDS,
    PROCESS_DIGEST_FIELDS,
    TEST_DIGEST_FIELDS,
    FunctionKey,
    Identity,
    ProcessKey,
    RecordClass,
)
from recordsync.domain.exceptions import MalformedRowError

logger = logging.getLogger(__name__)

DIGEST_SIZE = 16


# ── Value rendering ──────────────────────────────────────────────────


def render_value(value: Any) -> str:
    """Render a column value as deterministic, type-tagged text.

    The tag keeps None, "", 0, 0.0 and False distinct.
    """
    if value is None:
        return "n:"
    if isinstance(value, bool):
        return f"b:{int(value)}"
    if isinstance(value, int):
        return f"i:{value}"
    if isinstance(value, float):
        return f"f:{value!r}"
    if isinstance(value, Decimal):
        return f"d:{value.normalize()}"
    if isinstance(value, (datetime, date, time)):
        return f"t:{value.isoformat()}"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"x:{bytes(value).hex()}"
    return f"s:{value}"


def compute_digest(row: Row, fields: Iterable[str]) -> str:
    """Hash the rendered values of ``fields`` in order.

    Each value is length-prefixed so adjacent fields cannot bleed into
    one another. Absent columns hash the same as NULL.
    """
    hasher = hashlib.blake2b(digest_size=DIGEST_SIZE)
    for name in fields:
        text = render_value(row.get(name))
        encoded = text.encode("utf-8")
        hasher.update(str(len(encoded)).encode("ascii"))
        hasher.update(b":")
        hasher.update(encoded)
    return hasher.hexdigest()


# ── Identity coercion ────────────────────────────────────────────────


def _require(row: Row, column: str, record_type: str) -> Any:
    value = row.get(column)
    if value is None:
        raise MalformedRowError(record_type, f"missing key column '{column}'")
    return value


def _as_int(row: Row, column: str, record_type: str) -> int:
    value = _require(row, column, record_type)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedRowError(record_type, f"'{column}'={value!r} is not numeric")
    if not number.is_integer():
        raise MalformedRowError(record_type, f"'{column}'={value!r} is not an integer")
    return int(number)


def _as_float(row: Row, column: str, record_type: str) -> float:
    value = _require(row, column, record_type)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedRowError(record_type, f"'{column}'={value!r} is not numeric")
    if math.isnan(number) or math.isinf(number):
        raise MalformedRowError(record_type, f"'{column}'={value!r} is not finite")
    return number


def identity_of_test(row: Row) -> int:
    return _as_int(row, "test_id", RecordClass.TEST.value)


def identity_of_process(row: Row) -> ProcessKey:
    record_type = RecordClass.PROCESS.value
    return ProcessKey(
        _as_int(row, "test_id", record_type),
        _as_float(row, "process_id", record_type),
    )


def identity_of_function(row: Row) -> FunctionKey:
    record_type = RecordClass.FUNCTION.value
    return FunctionKey(
        _as_float(row, "process_id", record_type),
        _as_int(row, "function_position", record_type),
    )


# ── Fingerprinter ────────────────────────────────────────────────────


class Fingerprinter:
    """Builds identity/digest pairs for one record class."""

    def __init__(
        self,
        record_class: RecordClass,
        identity: Callable[[Row], Identity],
        digest_fields: tuple[str, ...],
    ) -> None:
        self.record_class = record_class
        self.digest_fields = digest_fields
        self._identity = identity

    def fingerprint(self, row: Row) -> tuple[Identity, str] | None:
        """Return (identity, digest), or None if the row has no usable identity."""
        try:
            identity = self._identity(row)
        except MalformedRowError as exc:
            logger.warning("Dropping row from sample: %s", exc)
            return None
        return identity, compute_digest(row, self.digest_fields)

    def build_snapshot(self, rows: Iterable[Row]) -> dict[Identity, str]:
        """Fingerprint every row into an identity → digest mapping."""
        snapshot: dict[Identity, str] = {}
        dropped = 0
        for row in rows:
            result = self.fingerprint(row)
            if result is None:
                dropped += 1
                continue
            identity, digest = result
            if identity in snapshot:
                logger.debug(
                    "Duplicate %s identity %s in one sample — last row wins",
                    self.record_class.value, identity,
                )
            snapshot[identity] = digest
        if dropped:
            logger.info(
                "%s sample: %d rows fingerprinted, %d dropped",
                self.record_class.value, len(snapshot), dropped,
            )
        return snapshot


TEST_FINGERPRINTER = Fingerprinter(RecordClass.TEST, identity_of_test, TEST_DIGEST_FIELDS)
PROCESS_FINGERPRINTER = Fingerprinter(RecordClass.PROCESS, identity_of_process, PROCESS_DIGEST_FIELDS)
FUNCTION_FINGERPRINTER = Fingerprinter(RecordClass.FUNCTION, identity_of_function, FUNCTION_DIGEST_FIELDS)

FINGERPRINTERS: dict[RecordClass, Fingerprinter] = {
    RecordClass.TEST: TEST_FINGERPRINTER,
    RecordClass.PROCESS: PROCESS_FINGERPRINTER,
    RecordClass.FUNCTION: FUNCTION_FINGERPRINTER,
}
