# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Lazy, memoizing loader for workspace modules."""

import types
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

from loguru import logger

from psyduck_sandbox.engine.budget import BudgetClock
from psyduck_sandbox.engine.context import SandboxContext
from psyduck_sandbox.engine.guard import compile_restricted
from psyduck_sandbox.engine.resolver import SOURCE_SUFFIX, relative_import_specifier, resolve
from psyduck_sandbox.engine.vfs import VirtualFileTable
from psyduck_sandbox.errors import ModuleAccessDeniedError


class ModuleState(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class ModuleRecord:
    """The ``module`` binding of a workspace module.

    ``exports`` starts as the module's own namespace; executed code may
    replace it with ``module.exports = value``. A module whose body raised
    keeps the error, so later requires fail the same way without re-running it.
    """

    __slots__ = ("path", "exports", "state", "error")

    def __init__(self, path: str, exports: Any):
        self.path = path
        self.exports = exports
        self.state = ModuleState.LOADING
        self.error: BaseException | None = None

    def __repr__(self) -> str:
        return f"<module record {self.path!r} ({self.state.value})>"


def module_name(path: str) -> str:
    """Dotted name for a canonical path: ``pkg/util.py`` -> ``pkg.util``."""
    if path.endswith(SOURCE_SUFFIX):
        path = path[: -len(SOURCE_SUFFIX)]
    return path.replace("/", ".")


class ModuleLoader:
    """Loads each workspace module at most once per request.

    A record is cached before its body runs, so a module that requires itself
    through a cycle receives the partially populated exports instead of
    recursing.
    """

    def __init__(
        self,
        files: VirtualFileTable,
        context: SandboxContext,
        clock: BudgetClock,
        module_timeout: float,
    ):
        self.files = files
        self.context = context
        self.clock = clock
        self.module_timeout = module_timeout
        self._cache: dict[str, ModuleRecord] = {}
        context.attach_loader(self)

    def record(self, path: str) -> ModuleRecord | None:
        return self._cache.get(path)

    def require_from(self, requester: str) -> Callable[[str], Any]:
        """Build the ``require`` binding for the module at ``requester``."""

        def require(specifier: str) -> Any:
            return self.load(resolve(specifier, requester, self.files))

        return require

    def load(self, path: str, name: str | None = None, nested: bool = True) -> Any:
        """Return the exports of the module at canonical ``path``, executing it on first use.

        Args:
            path: Canonical workspace path, already resolved.
            name: Value for ``__name__``; derived from the path when omitted.
            nested: Run the body under its own module budget. The entry module
                runs directly under the enclosing program budget.
        """
        cached = self._cache.get(path)
        if cached is not None:
            if cached.state is ModuleState.FAILED:
                assert cached.error is not None
                raise cached.error
            return cached.exports

        namespace = types.ModuleType(name or module_name(path))
        record = ModuleRecord(path, namespace)
        self._cache[path] = record
        namespace.__dict__.update(
            __builtins__=self.context.builtins,
            __file__=path,
            module=record,
            exports=namespace,
            require=self.require_from(path),
        )

        logger.debug(f"Loading workspace module {path}")
        try:
            code = compile_restricted(self.files[path], path)
            if nested:
                with self.clock.budget(f"loading {path}", self.module_timeout):
                    exec(code, namespace.__dict__)
            else:
                exec(code, namespace.__dict__)
        except BaseException as e:
            record.state = ModuleState.FAILED
            record.error = e
            raise

        record.state = ModuleState.LOADED
        return record.exports

    def import_relative(self, requester: str, name: str, fromlist: Sequence[str], level: int) -> Any:
        """Serve a Python relative import (``from .lib import add``) from the workspace."""
        if not requester or requester not in self.files:
            raise ModuleAccessDeniedError("." * level + name, "relative import outside a workspace module")
        require = self.require_from(requester)
        if name:
            return require(relative_import_specifier(name, level))

        # ``from . import a, b`` names sibling modules rather than attributes.
        if "*" in fromlist:
            raise ModuleAccessDeniedError("." * level + "*", "star import of a directory is not supported")
        prefix = relative_import_specifier("", level)
        return types.SimpleNamespace(**{item: require(prefix + item) for item in fromlist})
