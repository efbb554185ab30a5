# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Folds a program outcome into the public ExecutionResult."""

from psyduck_sandbox.engine.protocol import ExecutionState, ProgramOutcome
from psyduck_sandbox.models.result import ExecutionResult, ExecutionStatus
from psyduck_sandbox.utils.resources import peak_memory_bytes

_STATUS = {
    ExecutionState.COMPLETED: ExecutionStatus.COMPLETED,
    ExecutionState.ERRORED: ExecutionStatus.ERROR,
    ExecutionState.TIMED_OUT: ExecutionStatus.TIMEOUT,
}


def normalize(execution_id: str, outcome: ProgramOutcome, elapsed_ms: float) -> ExecutionResult:
    """Build the result record for a finished program.

    Captured output takes precedence over the return value; the return value
    is only shown when nothing was printed. Failed runs keep whatever output
    was captured before the failure.
    """
    if not outcome.state.terminal:
        raise ValueError(f"Cannot normalize a program in state {outcome.state.value}")

    status = _STATUS[outcome.state]
    output = "\n".join(outcome.lines)
    if status is ExecutionStatus.COMPLETED and not output:
        output = outcome.value or ""

    return ExecutionResult(
        id=execution_id,
        success=status is ExecutionStatus.COMPLETED,
        output=output,
        execution_time=max(elapsed_ms, 0.0),
        memory_usage=outcome.memory_usage or peak_memory_bytes(),
        status=status,
        error_message=None if status is ExecutionStatus.COMPLETED else (outcome.error or "Unknown error"),
    )
