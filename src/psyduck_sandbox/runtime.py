# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

from abc import ABC, abstractmethod

from psyduck_sandbox.engine.protocol import ProgramOutcome, WorkerJob


class SandboxRuntime(ABC):
    """
    Abstract base class for sandbox runtimes (worker process, inline).
    Follows the Strategy Pattern.
    """

    @abstractmethod
    async def start(self) -> None:
        """Prepare the runtime.

        Runtimes build a fresh realm per job, so this only checks preconditions.

        Raises:
            RuntimeError: If the runtime cannot execute programs.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def execute(self, job: WorkerJob) -> ProgramOutcome:
        """Run one program and report its outcome.

        Faults in the executed code, including budget overruns, are reported in
        the outcome rather than raised.

        Args:
            job: The validated program, its input and its budgets.

        Returns:
            ProgramOutcome: Terminal state, captured lines, return value or error.
        """
        pass  # pragma: no cover

    @abstractmethod
    async def terminate(self) -> None:
        """Stop any in-flight executions and release resources."""
        pass  # pragma: no cover
