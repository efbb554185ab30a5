# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Resolution of relative module specifiers inside a workspace."""

from collections.abc import Mapping

from psyduck_sandbox.engine.vfs import collapse, normalize_slashes
from psyduck_sandbox.errors import ModuleAccessDeniedError, WorkspaceModuleNotFoundError

SOURCE_SUFFIX = ".py"


def is_relative(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../")


def resolve(specifier: str, requester: str, files: Mapping[str, str]) -> str:
    """Resolve ``specifier`` as requested by the module at canonical path ``requester``.

    Only ``./`` and ``../`` specifiers are accepted, and the result may never
    climb above the workspace root. The escape check runs before the lookup,
    so an escaping specifier is denied even if the target would exist.

    Args:
        specifier: The string passed to ``require`` (or derived from a relative import).
        requester: Canonical path of the requesting module.
        files: The workspace file table.

    Returns:
        str: The canonical path of the target module.

    Raises:
        ModuleAccessDeniedError: If the specifier is not relative or escapes the root.
        WorkspaceModuleNotFoundError: If no file exists at the resolved path.
    """
    if not isinstance(specifier, str):
        raise ModuleAccessDeniedError(repr(specifier), "specifier must be a string")

    cleaned = normalize_slashes(specifier)
    if not is_relative(cleaned):
        raise ModuleAccessDeniedError(specifier, "only relative specifiers are allowed")

    base_dir = requester.split("/")[:-1]
    segments = collapse([*base_dir, *cleaned.split("/")])
    if segments is None:
        raise ModuleAccessDeniedError(specifier, "resolves outside the workspace root")

    target = "/".join(segments)
    if target and target in files:
        return target
    if target and target + SOURCE_SUFFIX in files:
        return target + SOURCE_SUFFIX
    raise WorkspaceModuleNotFoundError(specifier)


def relative_import_specifier(name: str, level: int) -> str:
    """Translate a Python relative import into a ``require`` specifier.

    ``from .a.b import x`` (level 1, name ``a.b``) becomes ``./a/b``;
    ``from ..c import y`` (level 2) becomes ``../c``.
    """
    prefix = "./" if level == 1 else "../" * (level - 1)
    return prefix + name.replace(".", "/")
