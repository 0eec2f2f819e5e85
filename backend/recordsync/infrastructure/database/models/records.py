"""SQLAlchemy Core tables for the test / process / function hierarchy.

Core ``Table`` objects rather than mapped classes: the process and
function tables carry dozens of numbered parameter slots that are read as
flat field-sets and assembled into domain records by the repository.
"""

from sqlalchemy import Column, Float, Index, Integer, Table, Text

from recordsync.domain.entities import (
    FUNCTION_PARAM_COUNT,
    PROCESS_PARAM_COUNT,
    param_columns,
)
from recordsync.infrastructure.database.base import Base


def _param_slots(count: int) -> list[Column]:
    return [Column(name, Text, nullable=True) for name in param_columns(count)]


tests_table = Table(
    "tests",
    Base.metadata,
    Column("test_id", Integer, primary_key=True, autoincrement=False),
    Column("test_name", Text),
    Column("run_status", Text),
    Column("last_running", Text),
    Column("last_time_pass", Text),
    Column("bugs", Text),
    Column("exception_message", Text),
    Column("recipients_emails_list", Text),
    Column("send_email_report", Text),
    Column("email_on_failure_only", Text),
    Column("exit_test_on_failure", Text),
    Column("test_run_again_times", Text),
    Column("snapshot_multiple_failure", Text),
    Column("disable_kill_driver", Text),
)

processes_table = Table(
    "processes",
    Base.metadata,
    Column("test_id", Integer, primary_key=True, autoincrement=False),
    Column("process_id", Float, primary_key=True),
    Column("process_name", Text),
    Column("process_position", Float),
    Column("module", Text),
    Column("index", Integer),
    Column("comments", Text),
    Column("last_running", Text),
    Column("repeat", Text),
    Column("web3_operator", Text),
    Column("pass_fail_operator", Text),
    Column("temp_param", Text),
    *_param_slots(PROCESS_PARAM_COUNT),
    Index("ix_processes_process_id", "process_id"),
)

functions_table = Table(
    "functions",
    Base.metadata,
    Column("process_id", Float, primary_key=True),
    Column("function_position", Integer, primary_key=True, autoincrement=False),
    Column("function_name", Text),
    Column("function_description", Text),
    Column("actual_value", Text),
    Column("break_point", Text),
    Column("comments", Text),
    Column("index", Integer),
    Column("web3_operator", Text),
    Column("pass_fail_operator", Text),
    *_param_slots(FUNCTION_PARAM_COUNT),
)
