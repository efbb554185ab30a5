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

from psyduck_sandbox.engine.protocol import (
    ExecutionState,
    OutputMessage,
    ResultMessage,
    WorkerJob,
    decode_message,
    encode_message,
)


def test_encode_is_one_line() -> None:
    line = encode_message(OutputMessage(line="multi\nline"))
    assert line.endswith("\n")
    assert line.count("\n") == 1


def test_decode_dispatches_on_type() -> None:
    output = decode_message('{"type": "output", "line": "hi"}')
    result = decode_message(b'{"type": "result", "state": "timed_out", "error": "slow", "memory_usage": 5}\n')

    assert isinstance(output, OutputMessage) and output.line == "hi"
    assert isinstance(result, ResultMessage)
    assert result.state is ExecutionState.TIMED_OUT
    assert result.memory_usage == 5


@pytest.mark.parametrize("raw", ["not json", '{"type": "other"}', '{"type": "result", "state": "bogus"}'])
def test_decode_rejects_malformed_lines(raw: str) -> None:
    with pytest.raises(ValidationError):
        decode_message(raw)


def test_worker_job_mode() -> None:
    single = WorkerJob(code="print(1)", program_timeout=5, module_timeout=1)
    workspace = WorkerJob(code="", files={"main.py": ""}, entry_path="main.py", program_timeout=4, module_timeout=1)

    assert single.is_workspace is False
    assert workspace.is_workspace is True
    assert WorkerJob.model_validate_json(workspace.model_dump_json()) == workspace


def test_terminal_states() -> None:
    assert {state for state in ExecutionState if state.terminal} == {
        ExecutionState.COMPLETED,
        ExecutionState.ERRORED,
        ExecutionState.TIMED_OUT,
    }
