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
The in-realm execution engine: file table, resolver, loader, context, guard and program runner.
"""

from .budget import BudgetClock
from .context import SandboxContext
from .guard import ModuleProxy, compile_restricted
from .loader import ModuleLoader, ModuleRecord, ModuleState
from .program import Program
from .protocol import ExecutionState, ProgramOutcome, WorkerJob
from .resolver import resolve
from .vfs import VirtualFileTable

__all__ = [
    "BudgetClock",
    "ExecutionState",
    "ModuleLoader",
    "ModuleProxy",
    "ModuleRecord",
    "ModuleState",
    "Program",
    "ProgramOutcome",
    "SandboxContext",
    "VirtualFileTable",
    "WorkerJob",
    "compile_restricted",
    "resolve",
]
