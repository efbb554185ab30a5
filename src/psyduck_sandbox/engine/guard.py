# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Attribute restrictions for executed code.

Allowlisted modules reach executed code as read-only :class:`ModuleProxy`
copies without private names or foreign modules. Source is also checked
before it is compiled: attribute names that lead from ordinary objects back to
frames, globals or the class hierarchy are refused, as is ``getattr`` with
those names. Compiled code also calls a budget checkpoint at the top of every
loop body, function body and exception handler.
"""

import ast
import re
import types
from collections.abc import Callable, Iterable
from typing import Any

from psyduck_sandbox.errors import RestrictedAccessError

# Budget checkpoint inserted into compiled code; executed code may not name it.
CHECKPOINT_NAME = "__budget_check__"

FORBIDDEN_ATTRIBUTES = frozenset(
    {
        CHECKPOINT_NAME,
        "__base__",
        "__bases__",
        "__builtins__",
        "__closure__",
        "__code__",
        "__func__",
        "__getattribute__",
        "__globals__",
        "__loader__",
        "__mro__",
        "__self__",
        "__spec__",
        "__subclasses__",
        "__traceback__",
        "ag_frame",
        "cr_frame",
        "f_back",
        "f_builtins",
        "f_globals",
        "f_locals",
        "gi_frame",
        "mro",
        "tb_frame",
        "tb_next",
    }
)

_FORMAT_FIELD = re.compile(r"[.\[]\s*(\w+)")


def check_attribute(name: str) -> None:
    if name in FORBIDDEN_ATTRIBUTES:
        raise RestrictedAccessError(name)


def check_tree(tree: ast.AST) -> None:
    """Refuse forbidden attribute access anywhere in a parsed program.

    String constants are checked too: ``vars(cls)["__subclasses__"]`` and
    ``"{0.__globals__}".format(f)`` reach the same attributes by name.
    """
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute):
            check_attribute(node.attr)
        elif isinstance(node, ast.Name) and node.id == CHECKPOINT_NAME:
            raise RestrictedAccessError(node.id)
        elif isinstance(node, ast.Constant) and isinstance(node.value, str):
            check_attribute(node.value)
            for match in _FORMAT_FIELD.finditer(node.value):
                check_attribute(match.group(1))


class _InsertCheckpoints(ast.NodeTransformer):
    """Prefix loop bodies, function bodies and exception handlers with a budget check."""

    def _prefix(self, node: Any) -> Any:
        self.generic_visit(node)
        body = node.body
        is_function = isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef)
        at = 1 if is_function and ast.get_docstring(node) is not None else 0
        anchor = body[at] if at < len(body) else body[0]
        call = ast.Expr(ast.Call(func=ast.Name(id=CHECKPOINT_NAME, ctx=ast.Load()), args=[], keywords=[]))
        node.body = [*body[:at], ast.copy_location(call, anchor), *body[at:]]
        return node

    visit_For = visit_AsyncFor = visit_While = _prefix
    visit_FunctionDef = visit_AsyncFunctionDef = visit_ExceptHandler = _prefix


def compile_restricted(source: str | ast.Module, filename: str, flags: int = 0) -> types.CodeType:
    """Check, instrument and compile executed code."""
    tree = ast.parse(source, filename, mode="exec") if isinstance(source, str) else source
    check_tree(tree)
    tree = ast.fix_missing_locations(_InsertCheckpoints().visit(tree))
    return compile(tree, filename, "exec", flags=flags)


def guarded_getattr(obj: Any, name: str, *default: Any) -> Any:
    if isinstance(name, str):
        check_attribute(name)
    return getattr(obj, name, *default)


class ModuleProxy(types.ModuleType):
    """Read-only copy of an allowlisted module's public names."""

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"module '{self.__name__}' is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"module '{self.__name__}' is read-only")


def expose_module(
    module: types.ModuleType,
    allowed: Callable[[str], bool],
    cache: dict[str, ModuleProxy],
    refresh: bool = True,
) -> ModuleProxy:
    """Return the realm's view of ``module``.

    Private names are dropped. Submodules are kept only when their package is
    itself allowlisted, so ``collections.abc`` works and ``random._os``,
    ``dataclasses.sys`` do not. A refresh picks up submodules imported since
    the view was built.
    """
    proxy = cache.get(module.__name__)
    if proxy is not None and not refresh:
        return proxy
    if proxy is None:
        proxy = cache[module.__name__] = ModuleProxy(module.__name__, module.__doc__)

    public: dict[str, Any] = {}
    for name, value in list(vars(module).items()):
        if name.startswith("_"):
            continue
        if isinstance(value, types.ModuleType):
            if not allowed(value.__name__):
                continue
            value = expose_module(value, allowed, cache, refresh=False)
        public[name] = value
    exported: Iterable[str] | None = getattr(module, "__all__", None)
    if exported is not None:
        public["__all__"] = [n for n in exported if n in public]
    vars(proxy).update(public)
    return proxy
