# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""The execution realm shared by every unit of one request.

WARNING: this is a cooperative sandbox, not a security boundary. Allowlisted
modules are handed out as read-only proxies without their private names, but
hard isolation comes from running the realm in a disposable worker process.
"""

import builtins
import io
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Any

from psyduck_sandbox.engine.guard import CHECKPOINT_NAME, ModuleProxy, expose_module, guarded_getattr
from psyduck_sandbox.errors import ModuleAccessDeniedError

if TYPE_CHECKING:
    from psyduck_sandbox.engine.loader import ModuleLoader

BLOCKED_BUILTINS = frozenset(
    {
        "breakpoint",
        "compile",
        "copyright",
        "credits",
        "eval",
        "exec",
        "exit",
        "help",
        "license",
        "open",
        "quit",
    }
)

_host_import = builtins.__import__


def _no_checkpoint() -> None:
    pass


class OutputCapture:
    """Line-oriented capture of everything the program writes.

    Text is buffered until a newline arrives, so ``print(x, end="")`` followed
    by another print produces one line, as on a terminal.
    """

    def __init__(self, max_lines: int = 10_000, on_line: Callable[[str], None] | None = None):
        self.lines: list[str] = []
        self.truncated = False
        self._partial = ""
        self._max_lines = max_lines
        self._on_line = on_line

    def write(self, text: str) -> int:
        text = str(text)
        *complete, self._partial = (self._partial + text).split("\n")
        for line in complete:
            self._emit(line)
        return len(text)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        if self._partial:
            partial, self._partial = self._partial, ""
            self._emit(partial)

    def _emit(self, line: str) -> None:
        if len(self.lines) >= self._max_lines:
            if not self.truncated:
                self.truncated = True
                self._append(f"[output truncated after {self._max_lines} lines]")
            return
        self._append(line)

    def _append(self, line: str) -> None:
        self.lines.append(line)
        if self._on_line is not None:
            self._on_line(line)


class Console:
    """``console`` binding: every method writes its arguments as one line."""

    __slots__ = ("_stream",)

    def __init__(self, stream: OutputCapture):
        self._stream = stream

    def log(self, *args: Any) -> None:
        self._stream.write(" ".join(str(a) for a in args) + "\n")

    info = log
    debug = log
    warn = log
    warning = log
    error = log


class InputReader:
    """Read-only ``stdin`` binding over the caller-supplied input text."""

    __slots__ = ("_buffer",)

    def __init__(self, text: str | None):
        self._buffer = io.StringIO(text or "")

    def read(self, size: int = -1) -> str:
        return self._buffer.read(size)

    def readline(self) -> str:
        return self._buffer.readline()

    def readlines(self) -> list[str]:
        return self._buffer.readlines()

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def __iter__(self) -> Iterator[str]:
        return iter(self.readline, "")


class SandboxContext:
    """Fresh per request: captured output, injected input, restricted builtins.

    The realm's bindings live in its builtins mapping, so every module sees the
    same ``print``, ``input``, ``console`` and ``stdin``. ``require`` is bound
    per module by the loader. ``checkpoint`` is called by instrumented code at
    every loop iteration, function entry and exception handler.
    """

    def __init__(
        self,
        input_text: str | None = None,
        allowed_modules: Iterable[str] = (),
        max_output_lines: int = 10_000,
        on_output: Callable[[str], None] | None = None,
        checkpoint: Callable[[], None] | None = None,
    ):
        self.checkpoint = checkpoint or _no_checkpoint
        self.output = OutputCapture(max_output_lines, on_output)
        self.console = Console(self.output)
        self.stdin = InputReader(input_text)
        self.allowed_modules = frozenset(allowed_modules)
        self.loader: "ModuleLoader | None" = None
        self._proxies: dict[str, ModuleProxy] = {}
        self.builtins = self._build_builtins()

    @property
    def lines(self) -> list[str]:
        return self.output.lines

    def attach_loader(self, loader: "ModuleLoader") -> None:
        self.loader = loader

    def new_namespace(self, name: str, filename: str) -> dict[str, Any]:
        return {"__builtins__": self.builtins, "__name__": name, "__file__": filename}

    def close(self) -> None:
        self.output.close()

    def _build_builtins(self) -> dict[str, Any]:
        realm = {k: v for k, v in vars(builtins).items() if k not in BLOCKED_BUILTINS}
        realm.update(
            __import__=self._import,
            getattr=guarded_getattr,
            print=self._print,
            input=self._input,
            console=self.console,
            stdin=self.stdin,
        )
        realm[CHECKPOINT_NAME] = self.checkpoint
        return realm

    def _print(self, *args: Any, sep: str | None = " ", end: str | None = "\n", file: Any = None, flush: bool = False) -> None:
        target = self.output if file is None else file
        sep = " " if sep is None else sep
        end = "\n" if end is None else end
        target.write(sep.join(str(a) for a in args) + end)

    def _input(self, prompt: Any = "") -> str:
        if prompt:
            self.output.write(str(prompt))
        line = self.stdin.readline()
        if not line:
            raise EOFError("EOF when reading a line")
        return line.rstrip("\r\n")

    def _import(
        self,
        name: str,
        globals: dict[str, Any] | None = None,
        locals: dict[str, Any] | None = None,
        fromlist: Sequence[str] | None = (),
        level: int = 0,
    ) -> Any:
        if level > 0:
            if self.loader is None:
                raise ModuleAccessDeniedError("." * level + name, "relative imports need a workspace")
            requester = (globals or {}).get("__file__", "")
            return self.loader.import_relative(requester, name, fromlist or (), level)

        if not self.module_allowed(name):
            raise ModuleAccessDeniedError(name, "not in the allowed module list")
        module = _host_import(name, globals, locals, fromlist or (), level)
        return expose_module(module, self.module_allowed, self._proxies)

    def module_allowed(self, name: str) -> bool:
        return name.partition(".")[0] in self.allowed_modules
