# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Shared error types for the execution sandbox."""


class SandboxError(Exception):
    """Base error for all sandbox failures."""


class RequestInvalidError(SandboxError, ValueError):
    """The execution request is malformed and was rejected before any sandbox work."""


class ModuleAccessDeniedError(SandboxError, ImportError):
    """A module specifier is not relative, escapes the workspace root, or is not allowlisted."""

    def __init__(self, specifier: str, reason: str = "") -> None:
        self.specifier = specifier
        self.reason = reason
        msg = f"Access denied for module: {specifier}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class WorkspaceModuleNotFoundError(SandboxError, ModuleNotFoundError):
    """A relative specifier resolved to a path that is not in the workspace."""

    def __init__(self, specifier: str) -> None:
        self.specifier = specifier
        super().__init__(f"Module not found: {specifier}")


class BudgetExceeded(BaseException):
    """A unit of execution ran past its wall-clock budget.

    Derives from ``BaseException`` so ``except Exception`` in executed code
    cannot swallow it.
    """

    def __init__(self, label: str, seconds: float) -> None:
        self.label = label
        self.seconds = seconds
        super().__init__(f"Execution exceeded {seconds:g} seconds limit ({label}).")


class RestrictedAccessError(SandboxError, AttributeError):
    """Executed code named an attribute or binding that is reserved or leads out of the realm."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Access denied for name: {name}")
        self.name = name
