# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

from psyduck_sandbox.config import SandboxConfig
from psyduck_sandbox.runtime import SandboxRuntime
from psyduck_sandbox.runtimes.inline import InlineRuntime
from psyduck_sandbox.runtimes.process import ProcessRuntime


class SandboxFactory:
    """
    Factory to create SandboxRuntime instances based on configuration.
    """

    @staticmethod
    def get_runtime(config: SandboxConfig) -> SandboxRuntime:
        """
        Returns an instance of the configured SandboxRuntime.
        """
        if config.runtime == "process":
            return ProcessRuntime(
                python_executable=config.python_executable,
                kill_grace=config.kill_grace,
            )
        elif config.runtime == "inline":
            return InlineRuntime()
        else:
            # This should be unreachable due to Pydantic validation, but for safety:
            raise ValueError(f"Unknown runtime: {config.runtime}")  # pragma: no cover
