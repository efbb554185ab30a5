# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

import sys
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_MODULES = {
    "__future__",
    "bisect",
    "collections",
    "copy",
    "dataclasses",
    "datetime",
    "decimal",
    "enum",
    "fractions",
    "functools",
    "heapq",
    "itertools",
    "json",
    "math",
    "operator",
    "random",
    "re",
    "statistics",
    "string",
    "textwrap",
    "typing",
}


class SandboxConfig(BaseSettings):
    """
    Configuration for the execution sandbox.

    Budgets are in seconds and host-configurable only; callers never set them.
    """

    runtime: Literal["process", "inline"] = "process"

    single_file_timeout: float = 5.0
    workspace_timeout: float = 4.0
    module_timeout: float = 1.0
    kill_grace: float = 1.0  # Interpreter startup allowance on top of the program budget

    memory_limit_mb: int = 512
    max_output_lines: int = 10_000
    allowed_modules: set[str] = DEFAULT_ALLOWED_MODULES
    python_executable: str = sys.executable
    enable_audit_logging: bool = True

    model_config = SettingsConfigDict(
        env_prefix="PSYDUCK_SANDBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_budget_order(self) -> "SandboxConfig":
        if self.module_timeout <= 0:
            raise ValueError("module_timeout must be positive")
        if not self.single_file_timeout > self.workspace_timeout > self.module_timeout:
            raise ValueError(
                "Budgets must satisfy single_file_timeout > workspace_timeout > module_timeout "
                f"(got {self.single_file_timeout}, {self.workspace_timeout}, {self.module_timeout})"
            )
        if self.kill_grace < 0:
            raise ValueError("kill_grace must not be negative")
        return self
