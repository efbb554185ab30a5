# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

import warnings

from loguru import logger

from psyduck_sandbox.engine.budget import alarm_available
from psyduck_sandbox.engine.program import Program
from psyduck_sandbox.engine.protocol import ProgramOutcome, WorkerJob
from psyduck_sandbox.runtime import SandboxRuntime
from psyduck_sandbox.utils.resources import peak_memory_bytes

_WARNING_MSG = (
    "InlineRuntime executes programs inside the host process with cooperative budgets only. "
    "Use ProcessRuntime for untrusted submissions."
)


class InlineRuntime(SandboxRuntime):
    """
    Runs programs in the calling thread of the host process.

    Budgets are enforced with alarms on the main thread and with compiled-in
    checkpoints everywhere; a program that blocks inside a C call cannot be
    stopped. Meant for development and tests.
    """

    def __init__(self) -> None:
        warnings.warn(_WARNING_MSG, stacklevel=2)
        logger.warning(_WARNING_MSG)

    async def start(self) -> None:
        if not alarm_available():
            logger.warning("InlineRuntime is not on the main thread; budgets stop executed code only at its checkpoints")

    async def execute(self, job: WorkerJob) -> ProgramOutcome:
        """
        Run the program synchronously in a fresh realm.
        """
        outcome = Program(job).run()
        outcome.memory_usage = peak_memory_bytes()
        return outcome

    async def terminate(self) -> None:
        """No-op: nothing outlives a single execution."""
