# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Entry point of a sandbox worker process (``python -m psyduck_sandbox.worker``).

Reads one :class:`~psyduck_sandbox.engine.protocol.WorkerJob` from stdin, runs
it, and streams protocol messages on the original stdout. The process exits
after a single job, taking the whole realm with it.
"""

import math
import os
import sys
from typing import TextIO

from loguru import logger
from pydantic import ValidationError

from psyduck_sandbox.engine.program import Program, format_error
from psyduck_sandbox.engine.protocol import (
    ExecutionState,
    OutputMessage,
    ResultMessage,
    WorkerJob,
    encode_message,
)
from psyduck_sandbox.utils.resources import apply_limits, peak_memory_bytes


def _open_channel() -> TextIO:
    """Take over fd 1 for protocol messages and point ``sys.stdout`` at stderr."""
    channel = os.fdopen(os.dup(sys.stdout.fileno()), "w", encoding="utf-8", buffering=1)
    sys.stdout = sys.stderr
    return channel


def run_job(raw: str, channel: TextIO) -> ResultMessage:
    def emit(line: str) -> None:
        channel.write(encode_message(OutputMessage(line=line)))

    try:
        job = WorkerJob.model_validate_json(raw)
    except ValidationError as e:
        result = ResultMessage(state=ExecutionState.ERRORED, error=f"Invalid worker job: {e}")
    else:
        apply_limits(job.memory_limit_mb, math.ceil(job.program_timeout) + 1)
        try:
            outcome = Program(job, on_output=emit).run()
            result = ResultMessage(state=outcome.state, value=outcome.value, error=outcome.error)
        except BaseException as e:  # noqa: BLE001 - the host always gets a result
            result = ResultMessage(state=ExecutionState.ERRORED, error=format_error(e))

    result.memory_usage = peak_memory_bytes()
    channel.write(encode_message(result))
    channel.flush()
    return result


def main() -> None:
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
    channel = _open_channel()
    run_job(sys.stdin.read(), channel)


if __name__ == "__main__":  # pragma: no cover
    main()
