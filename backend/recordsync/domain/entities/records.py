"""Domain entities — the test / process / function record hierarchy."""

from dataclasses import dataclass, field

from .keys import FunctionKey, ProcessKey, TestKey

PROCESS_PARAM_COUNT = 46
FUNCTION_PARAM_COUNT = 30


def param_columns(count: int) -> tuple[str, ...]:
    """Column names of the numbered parameter slots (param1..paramN)."""
    return tuple(f"param{i}" for i in range(1, count + 1))


# ── Fields that participate in change detection ──────────────────────
#
# Every column an operator can edit is listed here. A column missing from
# one of these tuples is invisible to the watcher: edits to it will not
# produce a change event. Order matters — it is the digest input order.

TEST_DIGEST_FIELDS: tuple[str, ...] = (
    "test_name",
    "run_status",
    "last_running",
    "last_time_pass",
    "bugs",
    "exception_message",
    "recipients_emails_list",
    "send_email_report",
    "email_on_failure_only",
    "exit_test_on_failure",
    "test_run_again_times",
    "snapshot_multiple_failure",
    "disable_kill_driver",
)

PROCESS_DIGEST_FIELDS: tuple[str, ...] = (
    "process_name",
    "process_position",
    "module",
    "index",
    "comments",
    "last_running",
    "repeat",
    "web3_operator",
    "pass_fail_operator",
    "temp_param",
) + param_columns(PROCESS_PARAM_COUNT)

FUNCTION_DIGEST_FIELDS: tuple[str, ...] = (
    "function_name",
    "function_description",
    "actual_value",
    "break_point",
    "comments",
    "index",
    "web3_operator",
    "pass_fail_operator",
) + param_columns(FUNCTION_PARAM_COUNT)


def _empty_params(count: int) -> list[str | None]:
    return [None] * count


@dataclass
class AutomationTest:
    """Top-level test definition. Owns zero or more processes."""

    test_id: int | None
    test_name: str | None = None
    run_status: str | None = None
    last_running: str | None = None
    last_time_pass: str | None = None
    bugs: str | None = None
    exception_message: str | None = None
    recipients_emails_list: str | None = None
    send_email_report: str | None = None
    email_on_failure_only: str | None = None
    exit_test_on_failure: str | None = None
    test_run_again_times: str | None = None
    snapshot_multiple_failure: str | None = None
    disable_kill_driver: str | None = None

    @property
    def key(self) -> TestKey | None:
        if self.test_id is None:
            return None
        return int(self.test_id)


@dataclass
class Process:
    """A step of a test. Identity is (test_id, process_id)."""

    test_id: int | None
    process_id: float | None
    process_name: str | None = None
    process_position: float | None = None
    module: str | None = None
    index: int | None = None
    comments: str | None = None
    last_running: str | None = None
    repeat: str | None = None
    web3_operator: str | None = None
    pass_fail_operator: str | None = None
    temp_param: str | None = None
    params: list[str | None] = field(
        default_factory=lambda: _empty_params(PROCESS_PARAM_COUNT)
    )

    @property
    def key(self) -> ProcessKey | None:
        if self.test_id is None or self.process_id is None:
            return None
        return ProcessKey(int(self.test_id), float(self.process_id))


@dataclass
class Function:
    """A function call inside a process. Identity is (process_id, position)."""

    process_id: float | None
    function_position: int | None
    function_name: str | None = None
    function_description: str | None = None
    actual_value: str | None = None
    break_point: str | None = None
    comments: str | None = None
    index: int | None = None
    web3_operator: str | None = None
    pass_fail_operator: str | None = None
    params: list[str | None] = field(
        default_factory=lambda: _empty_params(FUNCTION_PARAM_COUNT)
    )

    @property
    def key(self) -> FunctionKey | None:
        if self.process_id is None or self.function_position is None:
            return None
        return FunctionKey(float(self.process_id), int(self.function_position))
