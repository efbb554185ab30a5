# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

import threading
import time
from typing import Any, Callable

import pytest

from psyduck_sandbox.engine.budget import alarm_available
from psyduck_sandbox.engine.program import Program, compile_top_level, drive, format_error
from psyduck_sandbox.engine.protocol import ExecutionState, ProgramOutcome, WorkerJob

JobFactory = Callable[..., WorkerJob]

needs_alarm = pytest.mark.skipif(not alarm_available(), reason="needs SIGALRM on the main thread")

WORKSPACE_EXAMPLE = {
    "main.py": "add = require('./lib').add\nprint(add(2, 3))\n",
    "lib.py": "def add(a, b):\n    return a + b\n",
}


def test_print_completes(make_job: JobFactory) -> None:
    program = Program(make_job("print('hello')"))
    outcome = program.run()

    assert outcome.state is ExecutionState.COMPLETED
    assert program.state is ExecutionState.COMPLETED
    assert outcome.lines == ["hello"]
    assert outcome.error is None


def test_trailing_expression_is_the_value(make_job: JobFactory) -> None:
    outcome = Program(make_job("x = 20\nx + 22")).run()
    assert outcome.lines == []
    assert outcome.value == "42"


def test_none_value_is_not_rendered(make_job: JobFactory) -> None:
    outcome = Program(make_job("None")).run()
    assert outcome.state is ExecutionState.COMPLETED
    assert outcome.value is None


def test_top_level_await(make_job: JobFactory) -> None:
    source = "async def f():\n    return 7\n\nawait f()\n"
    outcome = Program(make_job(source)).run()
    assert outcome.state is ExecutionState.COMPLETED
    assert outcome.value == "7"


def test_awaiting_a_suspending_awaitable_errors(make_job: JobFactory) -> None:
    source = "class Pause:\n    def __await__(self):\n        yield 'tick'\n\nawait Pause()\n"
    outcome = Program(make_job(source)).run()
    assert outcome.state is ExecutionState.ERRORED
    assert outcome.error is not None
    assert outcome.error.startswith("RuntimeError: Cannot await 'tick'")


def test_error_keeps_output(make_job: JobFactory) -> None:
    outcome = Program(make_job("print('before')\nraise ValueError('boom')")).run()
    assert outcome.state is ExecutionState.ERRORED
    assert outcome.error == "ValueError: boom"
    assert outcome.lines == ["before"]
    assert outcome.value is None


def test_syntax_error(make_job: JobFactory) -> None:
    outcome = Program(make_job("print(")).run()
    assert outcome.state is ExecutionState.ERRORED
    assert outcome.error is not None and outcome.error.startswith("SyntaxError:")


def test_blocked_builtin(make_job: JobFactory) -> None:
    outcome = Program(make_job("open('/etc/passwd')")).run()
    assert outcome.error == "NameError: name 'open' is not defined"


def test_denied_import(make_job: JobFactory) -> None:
    outcome = Program(make_job("import os")).run()
    assert outcome.state is ExecutionState.ERRORED
    assert outcome.error == "ModuleAccessDeniedError: Access denied for module: os (not in the allowed module list)"


def test_allowed_import(make_job: JobFactory) -> None:
    outcome = Program(make_job("import math\nprint(math.factorial(5))")).run()
    assert outcome.lines == ["120"]


@pytest.mark.parametrize(
    ("code", "state", "error"),
    [
        ("raise SystemExit", ExecutionState.COMPLETED, None),
        ("raise SystemExit(0)", ExecutionState.COMPLETED, None),
        ("raise SystemExit(3)", ExecutionState.ERRORED, "SystemExit: 3"),
    ],
)
def test_system_exit(make_job: JobFactory, code: str, state: ExecutionState, error: str | None) -> None:
    outcome = Program(make_job(f"print('bye')\n{code}")).run()
    assert outcome.state is state
    assert outcome.error == error
    assert outcome.lines == ["bye"]


def test_input_is_injected(make_job: JobFactory) -> None:
    job = make_job("a = int(input())\nb = int(input())\nprint(a + b)", input="3\n4\n")
    outcome = Program(job).run()
    assert outcome.lines == ["7"]


def test_output_callback_receives_lines(make_job: JobFactory) -> None:
    received: list[str] = []
    Program(make_job("print(1)\nprint(2, end='')"), on_output=received.append).run()
    assert received == ["1", "2"]


def test_programs_do_not_share_state(make_job: JobFactory) -> None:
    Program(make_job("leaked = 1")).run()
    outcome = Program(make_job("print(leaked)")).run()
    assert outcome.error == "NameError: name 'leaked' is not defined"


def test_output_is_capped(make_job: JobFactory) -> None:
    outcome = Program(make_job("for i in range(10):\n    print(i)", max_output_lines=3)).run()
    assert outcome.lines == ["0", "1", "2", "[output truncated after 3 lines]"]


@needs_alarm
def test_single_file_timeout(make_job: JobFactory) -> None:
    outcome = Program(make_job("print('spinning')\nwhile True:\n    pass", program_timeout=0.3)).run()
    assert outcome.state is ExecutionState.TIMED_OUT
    assert outcome.error == "Execution exceeded 0.3 seconds limit (program)."
    assert outcome.lines == ["spinning"]


@needs_alarm
def test_timeout_survives_broad_except(make_job: JobFactory) -> None:
    source = "while True:\n    try:\n        while True:\n            pass\n    except Exception:\n        pass\n"
    outcome = Program(make_job(source, program_timeout=0.3)).run()
    assert outcome.state is ExecutionState.TIMED_OUT


def test_timeout_survives_base_exception_handlers(make_job: JobFactory) -> None:
    source = "while True:\n    try:\n        while True:\n            pass\n    except BaseException:\n        pass\n"
    started = time.monotonic()
    outcome = Program(make_job(source, program_timeout=0.3)).run()
    assert outcome.state is ExecutionState.TIMED_OUT
    assert outcome.error == "Execution exceeded 0.3 seconds limit (program)."
    assert time.monotonic() - started < 3


def test_timeout_survives_nested_base_exception_handlers(make_job: JobFactory) -> None:
    source = (
        "def spin():\n"
        "    while True:\n"
        "        try:\n"
        "            while True:\n"
        "                pass\n"
        "        except BaseException:\n"
        "            pass\n"
        "while True:\n"
        "    try:\n"
        "        spin()\n"
        "    except BaseException:\n"
        "        print('swallowed')\n"
    )
    outcome = Program(make_job(source, program_timeout=0.3)).run()
    assert outcome.state is ExecutionState.TIMED_OUT


def test_loops_stop_off_the_main_thread(make_job: JobFactory) -> None:
    outcomes: list[ProgramOutcome] = []
    job = make_job("while True:\n    pass", program_timeout=0.3)
    worker = threading.Thread(target=lambda: outcomes.append(Program(job).run()))
    worker.start()
    worker.join(timeout=5)

    assert not worker.is_alive()
    assert outcomes[0].state is ExecutionState.TIMED_OUT
    assert outcomes[0].error == "Execution exceeded 0.3 seconds limit (program)."


def test_program_cannot_reach_host_modules(make_job: JobFactory) -> None:
    outcome = Program(make_job("import random\nos = random._os\nprint(os.getcwd())", allowed_modules=["random"])).run()
    assert outcome.state is ExecutionState.ERRORED
    assert outcome.error is not None and outcome.error.startswith("AttributeError")
    assert outcome.lines == []


def test_program_cannot_walk_frames(make_job: JobFactory) -> None:
    outcome = Program(make_job("print('start')\nprint.__self__")).run()
    assert outcome.state is ExecutionState.ERRORED
    assert outcome.error == "RestrictedAccessError: Access denied for name: __self__"
    assert outcome.lines == []


def test_workspace_example(make_job: JobFactory) -> None:
    outcome = Program(make_job(files=WORKSPACE_EXAMPLE, entry_path="main.py")).run()
    assert outcome.state is ExecutionState.COMPLETED
    assert outcome.lines == ["5"]


def test_workspace_non_callable_export_completes_empty(make_job: JobFactory) -> None:
    files = {"main.py": "value = 1\n"}
    outcome = Program(make_job(files=files, entry_path="main.py")).run()
    assert outcome.state is ExecutionState.COMPLETED
    assert outcome.lines == []
    assert outcome.value is None


def test_workspace_callable_export_is_called(make_job: JobFactory) -> None:
    files = {"main.py": "module.exports = lambda: 'done'\n"}
    outcome = Program(make_job(files=files, entry_path="main.py")).run()
    assert outcome.value == "done"


def test_workspace_async_export_is_awaited(make_job: JobFactory) -> None:
    files = {
        "main.py": "from .lib import greet\n\nasync def main():\n    return await greet()\n\nmodule.exports = main\n",
        "lib.py": "async def greet():\n    return 'hi'\n",
    }
    outcome = Program(make_job(files=files, entry_path="main.py")).run()
    assert outcome.state is ExecutionState.COMPLETED
    assert outcome.value == "hi"


def test_workspace_escape_is_an_error(make_job: JobFactory) -> None:
    files = {"pkg/main.py": "require('../../escape')\n", "escape.py": "print('escaped')\n"}
    outcome = Program(make_job(files=files, entry_path="pkg/main.py")).run()
    assert outcome.state is ExecutionState.ERRORED
    assert outcome.error == (
        "ModuleAccessDeniedError: Access denied for module: ../../escape (resolves outside the workspace root)"
    )
    assert outcome.lines == []


def test_workspace_missing_module(make_job: JobFactory) -> None:
    files = {"main.py": "print('first')\nrequire('./nope')\n"}
    outcome = Program(make_job(files=files, entry_path="main.py")).run()
    assert outcome.error == "WorkspaceModuleNotFoundError: Module not found: ./nope"
    assert outcome.lines == ["first"]


@needs_alarm
def test_workspace_module_timeout(make_job: JobFactory) -> None:
    files = {"main.py": "require('./slow')\n", "slow.py": "while True:\n    pass\n"}
    outcome = Program(make_job(files=files, entry_path="main.py", module_timeout=0.2)).run()
    assert outcome.state is ExecutionState.TIMED_OUT
    assert outcome.error == "Execution exceeded 0.2 seconds limit (loading slow.py)."


@needs_alarm
def test_workspace_entry_runs_under_program_budget(make_job: JobFactory) -> None:
    files = {"main.py": "while True:\n    pass\n"}
    outcome = Program(make_job(files=files, entry_path="main.py", program_timeout=0.4, module_timeout=0.1)).run()
    assert outcome.state is ExecutionState.TIMED_OUT
    assert outcome.error == "Execution exceeded 0.4 seconds limit (workspace)."


def test_compile_top_level_rewrites_trailing_expression() -> None:
    namespace: dict[str, Any] = {}
    eval(compile_top_level("1 + 1"), namespace)
    assert namespace["__result__"] == 2


def test_drive_returns_value() -> None:
    async def answer() -> int:
        return 42

    assert drive(answer()) == 42


def test_format_error() -> None:
    assert format_error(KeyError("k")) == "KeyError: 'k'"
