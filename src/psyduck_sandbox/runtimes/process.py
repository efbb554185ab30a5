# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

import asyncio
import os
import sys
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from psyduck_sandbox.engine.protocol import (
    ExecutionState,
    OutputMessage,
    ProgramOutcome,
    ResultMessage,
    WorkerJob,
    decode_message,
)
from psyduck_sandbox.runtime import SandboxRuntime

WORKER_MODULE = "psyduck_sandbox.worker"
_STDERR_TAIL = 2000
_STREAM_LIMIT = 16 * 1024 * 1024  # Longest single protocol line accepted from a worker
# Host variables passed to workers; everything else, credentials included, stays behind.
WORKER_ENV_ALLOWLIST = frozenset({"PATH", "LANG", "LC_ALL", "LC_CTYPE", "TMPDIR", "SYSTEMROOT"})


class ProcessRuntime(SandboxRuntime):
    """
    Runs every program in its own short-lived worker process.

    The worker enforces budgets cooperatively; this runtime enforces the
    program budget (plus a startup grace) by killing the process, so a busy
    loop cannot outlive its allowance.
    """

    def __init__(
        self,
        python_executable: str = sys.executable,
        kill_grace: float = 1.0,
    ):
        self.python_executable = python_executable
        self.kill_grace = kill_grace
        self._active: set[asyncio.subprocess.Process] = set()

    async def start(self) -> None:
        """
        Check that the worker interpreter exists.
        """
        if not Path(self.python_executable).exists():
            raise RuntimeError(f"Python executable not found: {self.python_executable}")
        logger.info(f"Process runtime ready ({self.python_executable})")

    async def execute(self, job: WorkerJob) -> ProgramOutcome:
        """
        Spawn a worker, stream its output and enforce the hard deadline.
        """
        proc = await asyncio.create_subprocess_exec(
            self.python_executable,
            "-m",
            WORKER_MODULE,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self._worker_env(),
            limit=_STREAM_LIMIT,
        )
        self._active.add(proc)
        logger.debug(f"Spawned sandbox worker pid={proc.pid}")

        lines: list[str] = []
        stderr_task = asyncio.create_task(self._read_stderr(proc))
        deadline = job.program_timeout + self.kill_grace
        try:
            try:
                result = await asyncio.wait_for(self._communicate(proc, job, lines), timeout=deadline)
            except asyncio.TimeoutError:
                logger.warning(f"Worker pid={proc.pid} exceeded {deadline:g}s. Killing it.")
                return ProgramOutcome(
                    state=ExecutionState.TIMED_OUT,
                    error=f"Execution exceeded {job.program_timeout:g} seconds limit.",
                    lines=lines,
                )
            await proc.wait()
        finally:
            await self._kill(proc)
            stderr = await stderr_task

        if result is None:
            detail = stderr.strip()[-_STDERR_TAIL:] or "Empty response from sandbox"
            logger.error(f"Sandbox worker exited with code {proc.returncode} without a result")
            return ProgramOutcome(
                state=ExecutionState.ERRORED,
                error=f"Sandbox worker exited with code {proc.returncode}: {detail}",
                lines=lines,
            )

        return ProgramOutcome(
            state=result.state,
            value=result.value,
            error=result.error,
            lines=lines,
            memory_usage=result.memory_usage,
        )

    async def terminate(self) -> None:
        """
        Kill any workers still running.
        """
        if self._active:
            logger.info(f"Terminating {len(self._active)} sandbox worker(s)")
        for proc in list(self._active):
            await self._kill(proc)

    async def _communicate(
        self, proc: asyncio.subprocess.Process, job: WorkerJob, lines: list[str]
    ) -> ResultMessage | None:
        assert proc.stdin is not None and proc.stdout is not None
        try:
            proc.stdin.write(job.model_dump_json().encode("utf-8"))
            await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.warning(f"Worker pid={proc.pid} closed stdin early: {e}")
        finally:
            proc.stdin.close()

        async for raw in proc.stdout:
            try:
                message = decode_message(raw)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed worker message: {e}")
                continue
            if isinstance(message, OutputMessage):
                lines.append(message.line)
            else:
                return message
        return None

    @staticmethod
    async def _read_stderr(proc: asyncio.subprocess.Process) -> str:
        assert proc.stderr is not None
        data = await proc.stderr.read()
        return data.decode("utf-8", errors="replace")

    async def _kill(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
        self._active.discard(proc)

    @staticmethod
    def _worker_env() -> dict[str, str]:
        env = {k: v for k, v in os.environ.items() if k in WORKER_ENV_ALLOWLIST}
        source_root = str(Path(__file__).resolve().parents[2])
        existing = os.environ.get("PYTHONPATH", "")
        env["PYTHONPATH"] = f"{source_root}{os.pathsep}{existing}" if existing else source_root
        env["PYTHONUNBUFFERED"] = "1"
        return env
