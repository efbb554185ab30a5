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
Data models for execution requests and results.
"""

from .request import ExecutionRequest, WorkspaceFile, WorkspaceSpec
from .result import ExecutionResult, ExecutionStatus

__all__ = [
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionStatus",
    "WorkspaceFile",
    "WorkspaceSpec",
]
