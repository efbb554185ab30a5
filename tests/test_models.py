# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

import pytest
from pydantic import ValidationError

from psyduck_sandbox.errors import RequestInvalidError
from psyduck_sandbox.models import ExecutionRequest, ExecutionResult, ExecutionStatus


def test_parse_camel_case_workspace() -> None:
    request = ExecutionRequest.parse(
        {
            "code": "print(1)",
            "language": "Python3",
            "input": "x",
            "workspace": {"files": [{"path": "main.py", "content": "print(1)"}], "entryPath": "main.py"},
        }
    )

    assert request.language == "python"
    assert request.input == "x"
    assert request.workspace is not None
    assert request.workspace.entry_path == "main.py"
    assert request.workspace.files[0].content == "print(1)"


def test_parse_snake_case_and_single_file() -> None:
    request = ExecutionRequest.parse({"code": "print(1)", "language": "py", "unknown": True})
    assert request.workspace is None
    assert request.input is None


@pytest.mark.parametrize(
    ("payload", "fragment"),
    [
        ({"language": "python"}, "code"),
        ({"code": "", "language": "python"}, "code"),
        ({"code": "print(1)"}, "language"),
        ({"code": "print(1)", "language": "javascript"}, "Only python execution is supported"),
        ({"code": "x", "language": "python", "workspace": {"files": []}}, "workspace.entryPath"),
        ({"code": "x", "language": "python", "workspace": {"files": [{"path": "a.py"}], "entryPath": "a.py"}}, "content"),
    ],
)
def test_parse_rejects_malformed_requests(payload: dict[str, object], fragment: str) -> None:
    with pytest.raises(RequestInvalidError, match="Invalid execution request") as exc_info:
        ExecutionRequest.parse(payload)
    assert fragment in str(exc_info.value)
    assert isinstance(exc_info.value, ValueError)


def test_request_is_frozen() -> None:
    request = ExecutionRequest(code="x", language="python")
    with pytest.raises(ValidationError):
        request.code = "y"  # type: ignore[misc]


def test_result_payload_uses_camel_case() -> None:
    result = ExecutionResult(
        id="1",
        success=False,
        output="",
        execution_time=1.5,
        memory_usage=100,
        status=ExecutionStatus.TIMEOUT,
        error_message="Execution exceeded 5 seconds limit.",
    )
    assert result.to_payload() == {
        "id": "1",
        "success": False,
        "output": "",
        "executionTime": 1.5,
        "memoryUsage": 100,
        "status": "timeout",
        "errorMessage": "Execution exceeded 5 seconds limit.",
    }


@pytest.mark.parametrize(
    ("success", "status"),
    [(True, ExecutionStatus.ERROR), (True, ExecutionStatus.TIMEOUT), (False, ExecutionStatus.COMPLETED)],
)
def test_result_success_matches_status(success: bool, status: ExecutionStatus) -> None:
    with pytest.raises(ValidationError, match="inconsistent"):
        ExecutionResult(id="1", success=success, execution_time=0, status=status)


def test_result_rejects_negative_time() -> None:
    with pytest.raises(ValidationError):
        ExecutionResult(id="1", success=True, execution_time=-1, status=ExecutionStatus.COMPLETED)
