# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from psyduck_sandbox.config import DEFAULT_ALLOWED_MODULES, SandboxConfig
from psyduck_sandbox.engine.protocol import ExecutionState, ProgramOutcome, WorkerJob


@pytest.fixture
def make_job() -> Callable[..., WorkerJob]:
    """Build a WorkerJob with short budgets; keyword arguments override fields."""

    def _make(code: str = "", **overrides: Any) -> WorkerJob:
        fields: dict[str, Any] = {
            "code": code,
            "program_timeout": 2.0,
            "module_timeout": 0.5,
            "allowed_modules": sorted(DEFAULT_ALLOWED_MODULES),
        }
        files = overrides.get("files")
        if files is not None and not code:
            fields["code"] = files[overrides["entry_path"]]
        fields.update(overrides)
        return WorkerJob(**fields)

    return _make


@pytest.fixture
def inline_config() -> SandboxConfig:
    return SandboxConfig(
        runtime="inline",
        single_file_timeout=1.0,
        workspace_timeout=0.8,
        module_timeout=0.3,
        enable_audit_logging=False,
    )


@pytest.fixture
def mock_runtime() -> Any:
    mock = MagicMock()
    mock.start = AsyncMock()
    mock.terminate = AsyncMock()
    mock.execute = AsyncMock(
        return_value=ProgramOutcome(state=ExecutionState.COMPLETED, lines=["out"], memory_usage=1024)
    )
    return mock
