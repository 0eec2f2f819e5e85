"""Identity types for the three record classes.

Tests are keyed by a plain integer. Processes and functions use composite
keys; the process id is a fractional sequence number in the source schema,
so it is kept as a float rather than forced into an integer.
"""

from enum import Enum
from typing import Any, NamedTuple, Union


class RecordClass(str, Enum):
    """The three levels of the record hierarchy."""

    TEST = "test"
    PROCESS = "process"
    FUNCTION = "function"


TestKey = int


class ProcessKey(NamedTuple):
    """Identity of a process: owning test + process id."""

    test_id: int
    process_id: float


class FunctionKey(NamedTuple):
    """Identity of a function: owning process + position within it.

    Functions are scoped by process id only, not by test id.
    """

    process_id: float
    function_position: int


Identity = Union[TestKey, ProcessKey, FunctionKey]


def identity_parts(identity: Identity) -> dict[str, Any]:
    """Decompose an identity into its named component parts."""
    if isinstance(identity, tuple) and hasattr(identity, "_asdict"):
        return dict(identity._asdict())
    return {"test_id": identity}
