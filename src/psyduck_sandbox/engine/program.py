# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Runs the top-level unit of one request inside a fresh realm."""

import ast
import inspect
from collections.abc import Callable
from typing import Any

from loguru import logger

from psyduck_sandbox.engine.budget import BudgetClock
from psyduck_sandbox.engine.context import SandboxContext
from psyduck_sandbox.engine.guard import compile_restricted
from psyduck_sandbox.engine.loader import ModuleLoader
from psyduck_sandbox.engine.protocol import ExecutionState, ProgramOutcome, WorkerJob
from psyduck_sandbox.engine.vfs import VirtualFileTable
from psyduck_sandbox.errors import BudgetExceeded

MAIN_FILENAME = "<main>"
RESULT_NAME = "__result__"


def format_error(exc: BaseException) -> str:
    return f"{exc.__class__.__name__}: {exc}"


def compile_top_level(source: str, filename: str = MAIN_FILENAME) -> Any:
    """Compile a single-file program as an asynchronous top-level unit.

    Top-level ``await`` is allowed, and a trailing expression statement is
    stored as the unit's return value.
    """
    tree = ast.parse(source, filename, mode="exec")
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        last = tree.body[-1]
        assign = ast.Assign(targets=[ast.Name(id=RESULT_NAME, ctx=ast.Store())], value=last.value)
        tree.body[-1] = ast.copy_location(assign, last)
        ast.fix_missing_locations(tree)
    return compile_restricted(tree, filename, flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT)


def drive(awaitable: Any) -> Any:
    """Run an awaitable to completion without an event loop.

    The realm has no scheduler, so anything that actually suspends is an error.
    """
    iterator = awaitable if inspect.iscoroutine(awaitable) else awaitable.__await__()
    try:
        yielded = iterator.send(None)
    except StopIteration as stop:
        return stop.value
    iterator.close()
    raise RuntimeError(f"Cannot await {yielded!r}: the sandbox has no event loop")


class Program:
    """One request's execution: PENDING -> RUNNING -> COMPLETED | ERRORED | TIMED_OUT."""

    def __init__(self, job: WorkerJob, on_output: Callable[[str], None] | None = None, clock: BudgetClock | None = None):
        self.job = job
        self.state = ExecutionState.PENDING
        self.clock = clock or BudgetClock()
        self.context = SandboxContext(
            input_text=job.input,
            allowed_modules=job.allowed_modules,
            max_output_lines=job.max_output_lines,
            on_output=on_output,
            checkpoint=self.clock.check,
        )
        self.loader: ModuleLoader | None = None

    def run(self) -> ProgramOutcome:
        """Drive the program to a terminal state. Never raises for faults in executed code."""
        self.state = ExecutionState.RUNNING
        value: Any = None
        error: str | None = None
        label = "workspace" if self.job.is_workspace else "program"
        try:
            with self.clock.budget(label, self.job.program_timeout):
                value = self._run_workspace() if self.job.is_workspace else self._run_single()
                self.clock.check()
            self.state = ExecutionState.COMPLETED
        except BudgetExceeded as e:
            self.state = ExecutionState.TIMED_OUT
            error = str(e)
        except SystemExit as e:
            if e.code in (None, 0):
                self.state = ExecutionState.COMPLETED
            else:
                self.state = ExecutionState.ERRORED
                error = format_error(e)
        except Exception as e:
            self.state = ExecutionState.ERRORED
            error = format_error(e)
        finally:
            self.context.close()

        logger.debug(f"Program finished in state {self.state.value}")
        rendered = None if value is None or self.state is not ExecutionState.COMPLETED else str(value)
        return ProgramOutcome(state=self.state, value=rendered, error=error, lines=list(self.context.lines))

    def _run_single(self) -> Any:
        namespace = self.context.new_namespace("__main__", MAIN_FILENAME)
        code = compile_top_level(self.job.code)
        pending = eval(code, namespace)
        if inspect.iscoroutine(pending):
            drive(pending)
        return namespace.get(RESULT_NAME)

    def _run_workspace(self) -> Any:
        assert self.job.files is not None and self.job.entry_path is not None
        files = VirtualFileTable(self.job.files, self.job.entry_path)
        self.loader = ModuleLoader(files, self.context, self.clock, self.job.module_timeout)
        main = self.loader.load(files.entry_path, name="__main__", nested=False)
        if not callable(main):
            return None
        result = main()
        if inspect.isawaitable(result):
            result = drive(result)
        return result
