# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""
psyduck-sandbox
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .config import SandboxConfig
from .errors import (
    BudgetExceeded,
    ModuleAccessDeniedError,
    RequestInvalidError,
    RestrictedAccessError,
    SandboxError,
    WorkspaceModuleNotFoundError,
)
from .factory import SandboxFactory
from .models import ExecutionRequest, ExecutionResult, ExecutionStatus
from .runtime import SandboxRuntime
from .runtimes import InlineRuntime, ProcessRuntime
from .sandbox import Sandbox, SandboxAsync

__all__ = [
    "BudgetExceeded",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionStatus",
    "InlineRuntime",
    "ModuleAccessDeniedError",
    "ProcessRuntime",
    "RequestInvalidError",
    "RestrictedAccessError",
    "Sandbox",
    "SandboxAsync",
    "SandboxConfig",
    "SandboxError",
    "SandboxFactory",
    "SandboxRuntime",
    "WorkspaceModuleNotFoundError",
]
