# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ExecutionStatus(str, Enum):
    COMPLETED = "completed"
    ERROR = "error"
    TIMEOUT = "timeout"


class ExecutionResult(BaseModel):
    """
    The normalized outcome of one execution request.

    Serialize with ``model_dump(by_alias=True)`` to get the camelCase wire shape.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., description="Unique identifier of this execution.")
    success: bool = Field(..., description="True only when the program completed.")
    output: str = Field(default="", description="Captured output, or the stringified return value.")
    execution_time: float = Field(..., ge=0, description="Wall-clock time in milliseconds.")
    memory_usage: int = Field(default=0, ge=0, description="Best-effort peak memory sample in bytes.")
    status: ExecutionStatus = Field(..., description="Terminal state of the execution.")
    error_message: str | None = Field(default=None, description="Error text for failed executions.")

    @model_validator(mode="after")
    def _check_status(self) -> "ExecutionResult":
        if (self.status is ExecutionStatus.COMPLETED) != self.success:
            raise ValueError(f"success={self.success} is inconsistent with status={self.status.value}")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)
