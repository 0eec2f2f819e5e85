from .keys import (
    FunctionKey,
    Identity,
    ProcessKey,
    RecordClass,
    TestKey,
    identity_parts,
)
from .records import (
    AutomationTest,
    Process,
    Function,
    FUNCTION_DIGEST_FIELDS,
    FUNCTION_PARAM_COUNT,
    PROCESS_DIGEST_FIELDS,
    PROCESS_PARAM_COUNT,
    TEST_DIGEST_FIELDS,
    param_columns,
)
from .change_set import ChangeSet, ClassDelta

__all__ = [
    "FunctionKey",
    "Identity",
    "ProcessKey",
    "RecordClass",
    "TestKey",
    "identity_parts",
    "AutomationTest",
    "Process",
    "Function",
    "FUNCTION_DIGEST_FIELDS",
    "FUNCTION_PARAM_COUNT",
    "PROCESS_DIGEST_FIELDS",
    "PROCESS_PARAM_COUNT",
    "TEST_DIGEST_FIELDS",
    "param_columns",
    "ChangeSet",
    "ClassDelta",
]
