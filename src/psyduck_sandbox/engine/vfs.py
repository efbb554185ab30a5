# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""In-memory, read-only file table for one workspace execution."""

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from loguru import logger

from psyduck_sandbox.errors import RequestInvalidError


def normalize_slashes(path: str) -> str:
    return path.replace("\\", "/")


def collapse(segments: Iterable[str]) -> list[str] | None:
    """Collapse ``.``/``..`` segments.

    Returns:
        The collapsed segments, or ``None`` if a ``..`` would climb above the root.
    """
    stack: list[str] = []
    for segment in segments:
        if segment in ("", "."):
            continue
        if segment == "..":
            if not stack:
                return None
            stack.pop()
        else:
            stack.append(segment)
    return stack


def canonical_path(path: str) -> str:
    """Canonicalize a submitted workspace path.

    Raises:
        RequestInvalidError: If the path is not a string, is absolute, or escapes the root.
    """
    if not isinstance(path, str):
        raise RequestInvalidError(f"Workspace path must be a string, got {type(path).__name__}")
    cleaned = normalize_slashes(path)
    if cleaned.startswith("/") or (cleaned[:1].isalpha() and cleaned[1:3] in (":", ":/")):
        raise RequestInvalidError(f"Workspace path must be relative: {path}")
    segments = collapse(cleaned.split("/"))
    if segments is None:
        raise RequestInvalidError(f"Workspace path escapes the workspace root: {path}")
    if not segments:
        raise RequestInvalidError(f"Workspace path is empty: {path!r}")
    return "/".join(segments)


class VirtualFileTable(Mapping[str, str]):
    """Immutable mapping of canonical workspace paths to source text.

    Built once per request and never mutated afterwards.
    """

    def __init__(self, files: Mapping[str, str], entry_path: str):
        self._files = MappingProxyType(dict(files))
        self.entry_path = entry_path

    @classmethod
    def build(
        cls, files: Iterable[tuple[str, str]] | Mapping[str, str], entry_path: str
    ) -> "VirtualFileTable":
        """Build a table from ``(path, content)`` pairs in submission order.

        Duplicate paths are accepted; the last one wins.

        Raises:
            RequestInvalidError: If a path or content is malformed, or the entry is missing.
        """
        pairs = files.items() if isinstance(files, Mapping) else files
        table: dict[str, str] = {}
        for path, content in pairs:
            key = canonical_path(path)
            if not isinstance(content, str):
                raise RequestInvalidError(f"Content of {path} must be a string")
            if key in table:
                logger.debug(f"Duplicate workspace path {key}; keeping the later file")
            table[key] = content

        entry = canonical_path(entry_path)
        if entry not in table:
            raise RequestInvalidError("Entry file not found in workspace")
        return cls(table, entry)

    def __getitem__(self, path: str) -> str:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __repr__(self) -> str:
        return f"VirtualFileTable(entry={self.entry_path!r}, files={sorted(self._files)!r})"
