# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from psyduck_sandbox.errors import RequestInvalidError
from psyduck_sandbox.languages import normalize_language


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class WorkspaceFile(_RequestModel):
    """One source file submitted as part of a workspace.

    Attributes:
        path: Workspace-relative path, e.g. ``"pkg/util.py"``.
        content: The file's source text.
    """

    path: str = Field(..., description="Workspace-relative path of the file.")
    content: str = Field(..., description="Source text of the file.")


class WorkspaceSpec(_RequestModel):
    """A multi-file program: the files plus the entry file to run."""

    files: list[WorkspaceFile] = Field(..., description="Files in submission order.")
    entry_path: str = Field(..., description="Path of the entry module inside the workspace.")


class ExecutionRequest(_RequestModel):
    """A request to execute a learner's program.

    Single-file mode uses ``code`` only. Workspace mode adds ``workspace``;
    ``code`` is still required (it usually mirrors the entry file in the editor).
    """

    code: str = Field(..., min_length=1, description="Program source text.")
    language: str = Field(..., description="Language of the program.")
    input: str | None = Field(default=None, description="Text presented to the program as stdin.")
    workspace: WorkspaceSpec | None = Field(default=None, description="Optional multi-file workspace.")

    @field_validator("language")
    @classmethod
    def _check_language(cls, value: str) -> str:
        return normalize_language(value)

    @classmethod
    def parse(cls, payload: Mapping[str, Any]) -> "ExecutionRequest":
        """Validate a raw request payload.

        Raises:
            RequestInvalidError: If code, language or workspace are missing or malformed.
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise RequestInvalidError(_describe(e)) from e


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "request"
        parts.append(f"{location}: {item['msg']}")
    return "Invalid execution request: " + "; ".join(parts)
