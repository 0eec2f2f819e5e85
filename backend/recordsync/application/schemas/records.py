"""Pydantic DTOs for test / process / function reads."""

from pydantic import BaseModel


class TestResponse(BaseModel):
    """A test definition (top of the hierarchy)."""

    test_id: int
    test_name: str | None
    run_status: str | None
    last_running: str | None
    last_time_pass: str | None
    bugs: str | None
    exception_message: str | None
    recipients_emails_list: str | None
    send_email_report: str | None
    email_on_failure_only: str | None
    exit_test_on_failure: str | None
    test_run_again_times: str | None
    snapshot_multiple_failure: str | None
    disable_kill_driver: str | None

    model_config = {"from_attributes": True}


class ProcessResponse(BaseModel):
    """A process as shown by display consumers."""

    test_id: int
    process_id: float
    process_name: str | None
    process_position: float | None
    module: str | None
    index: int | None
    comments: str | None
    last_running: str | None
    repeat: str | None
    web3_operator: str | None
    pass_fail_operator: str | None
    temp_param: str | None
    params: list[str | None]

    model_config = {"from_attributes": True}


class ProcessListResponse(BaseModel):
    items: list[ProcessResponse]
    total: int
    from_cache: bool


class FunctionResponse(BaseModel):
    process_id: float
    function_position: int
    function_name: str | None
    function_description: str | None
    actual_value: str | None
    break_point: str | None
    comments: str | None
    index: int | None
    web3_operator: str | None
    pass_fail_operator: str | None
    params: list[str | None]

    model_config = {"from_attributes": True}
