# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Messages exchanged between the host and a worker process.

The host writes one :class:`WorkerJob` as JSON to the worker's stdin. The
worker answers on stdout with newline-delimited messages: zero or more
:class:`OutputMessage` lines as output is captured, then exactly one
:class:`ResultMessage`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter


class ExecutionState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERRORED = "errored"
    TIMED_OUT = "timed_out"

    @property
    def terminal(self) -> bool:
        return self in (ExecutionState.COMPLETED, ExecutionState.ERRORED, ExecutionState.TIMED_OUT)


class WorkerJob(BaseModel):
    """Everything a realm needs to run one program."""

    code: str
    input: str | None = None
    files: dict[str, str] | None = Field(default=None, description="Canonical path -> source, workspace mode only.")
    entry_path: str | None = None
    program_timeout: float
    module_timeout: float
    allowed_modules: list[str] = Field(default_factory=list)
    max_output_lines: int = 10_000
    memory_limit_mb: int | None = None

    @property
    def is_workspace(self) -> bool:
        return self.files is not None


class OutputMessage(BaseModel):
    type: Literal["output"] = "output"
    line: str


class ResultMessage(BaseModel):
    type: Literal["result"] = "result"
    state: ExecutionState
    value: str | None = None
    error: str | None = None
    memory_usage: int = 0


WorkerMessage = Annotated[OutputMessage | ResultMessage, Field(discriminator="type")]
_WORKER_MESSAGE: TypeAdapter[OutputMessage | ResultMessage] = TypeAdapter(WorkerMessage)


def encode_message(message: OutputMessage | ResultMessage) -> str:
    return message.model_dump_json() + "\n"


def decode_message(line: str | bytes) -> OutputMessage | ResultMessage:
    """Parse one line from a worker.

    Raises:
        pydantic.ValidationError: If the line is not a well-formed message.
    """
    return _WORKER_MESSAGE.validate_json(line)


@dataclass
class ProgramOutcome:
    """What a runtime reports back for one program, before normalization."""

    state: ExecutionState
    value: str | None = None
    error: str | None = None
    lines: list[str] = field(default_factory=list)
    memory_usage: int = 0
