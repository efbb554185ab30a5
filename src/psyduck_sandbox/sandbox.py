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
from time import perf_counter
from typing import Any
from uuid import uuid4

import anyio
from loguru import logger

from psyduck_sandbox.config import SandboxConfig
from psyduck_sandbox.engine.normalize import normalize
from psyduck_sandbox.engine.program import format_error
from psyduck_sandbox.engine.protocol import ExecutionState, ProgramOutcome, WorkerJob
from psyduck_sandbox.engine.vfs import VirtualFileTable
from psyduck_sandbox.factory import SandboxFactory
from psyduck_sandbox.languages import LanguageInfo
from psyduck_sandbox.languages import get_language_template as _template_for
from psyduck_sandbox.languages import list_languages as _list_languages
from psyduck_sandbox.models import ExecutionRequest, ExecutionResult
from psyduck_sandbox.runtime import SandboxRuntime
from psyduck_sandbox.utils.audit import AuditLogger


class SandboxAsync:
    """Async-native Sandbox Service (The Core).

    Validates requests, hands them to the configured runtime and normalizes
    whatever comes back into an ExecutionResult.
    """

    def __init__(
        self,
        config: SandboxConfig | None = None,
        runtime: SandboxRuntime | None = None,
    ):
        """Initializes the SandboxAsync service.

        Args:
            config: Configuration for the sandbox.
            runtime: Optional runtime; built from the configuration when omitted.
        """
        self.config = config or SandboxConfig()
        self.runtime: SandboxRuntime = runtime or SandboxFactory.get_runtime(self.config)
        self.audit = AuditLogger(enabled=self.config.enable_audit_logging)

    async def __aenter__(self) -> "SandboxAsync":
        """Starts the sandbox runtime."""
        await self.runtime.start()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Terminates the runtime and any workers still alive."""
        await self.runtime.terminate()

    def build_job(self, request: ExecutionRequest) -> WorkerJob:
        """Turn a validated request into the job a runtime executes.

        Raises:
            RequestInvalidError: If a workspace path is malformed or the entry file is missing.
        """
        files: dict[str, str] | None = None
        entry_path: str | None = None
        timeout = self.config.single_file_timeout
        if request.workspace is not None:
            table = VirtualFileTable.build(
                [(f.path, f.content) for f in request.workspace.files],
                request.workspace.entry_path,
            )
            files = dict(table)
            entry_path = table.entry_path
            timeout = self.config.workspace_timeout

        return WorkerJob(
            code=request.code,
            input=request.input,
            files=files,
            entry_path=entry_path,
            program_timeout=timeout,
            module_timeout=self.config.module_timeout,
            allowed_modules=sorted(self.config.allowed_modules),
            max_output_lines=self.config.max_output_lines,
            memory_limit_mb=self.config.memory_limit_mb,
        )

    async def execute(self, request: ExecutionRequest | Mapping[str, Any]) -> ExecutionResult:
        """Executes a program in the sandbox.

        Args:
            request: A validated request, or a raw payload with camelCase or snake_case keys.

        Returns:
            ExecutionResult: The normalized outcome; faults in the program never raise.

        Raises:
            RequestInvalidError: If the request is malformed. No result is produced.
        """
        if not isinstance(request, ExecutionRequest):
            request = ExecutionRequest.parse(request)
        job = self.build_job(request)

        execution_id = uuid4().hex
        source = job.files[job.entry_path] if job.files is not None and job.entry_path else job.code
        await self.audit.log_pre_execution(
            execution_id,
            source,
            request.language,
            file_count=len(job.files) if job.files is not None else 1,
        )
        log = logger.bind(execution_id=execution_id, workspace=job.is_workspace)
        log.info("Executing program in sandbox")

        start = perf_counter()
        try:
            outcome = await self.runtime.execute(job)
        except Exception as e:
            log.error(f"Runtime failed: {e}")
            outcome = ProgramOutcome(state=ExecutionState.ERRORED, error=format_error(e))
        elapsed_ms = (perf_counter() - start) * 1000

        result = normalize(execution_id, outcome, elapsed_ms)
        log.info(f"Execution finished: {result.status.value} in {elapsed_ms:.1f}ms")
        return result

    def list_languages(self) -> list[LanguageInfo]:
        """Returns the languages offered by the editor."""
        return _list_languages()

    def get_language_template(self, language: str) -> str:
        """Returns the starter template for a language, or an empty string."""
        return _template_for(language)


class Sandbox:
    """Sync Facade for SandboxAsync (The Facade).

    Wraps SandboxAsync and executes methods via anyio.run.
    """

    def __init__(
        self,
        config: SandboxConfig | None = None,
        runtime: SandboxRuntime | None = None,
    ):
        """Initializes the Sandbox facade.

        Args:
            config: Configuration for the sandbox.
            runtime: Optional runtime override.
        """
        self._async = SandboxAsync(config, runtime)

    def __enter__(self) -> "Sandbox":
        """Context entry point."""
        anyio.run(self._async.__aenter__)
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Context exit point."""
        anyio.run(self._async.__aexit__, exc_type, exc_val, exc_tb)

    def execute(self, request: ExecutionRequest | Mapping[str, Any]) -> ExecutionResult:
        """Executes a program synchronously.

        Args:
            request: A validated request or a raw payload.

        Returns:
            ExecutionResult: The normalized outcome.
        """
        return anyio.run(self._async.execute, request)

    def list_languages(self) -> list[LanguageInfo]:
        return self._async.list_languages()

    def get_language_template(self, language: str) -> str:
        return self._async.get_language_template(language)
