# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Best-effort memory sampling and POSIX resource limits."""

import sys

from loguru import logger

try:
    import resource
except ImportError:  # pragma: no cover - Windows
    resource = None  # type: ignore[assignment]


def peak_memory_bytes() -> int:
    """Peak resident set size of the current process in bytes, or 0 if unknown."""
    if resource is None:
        return 0  # pragma: no cover
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux reports kilobytes, macOS bytes.
    return int(peak if sys.platform == "darwin" else peak * 1024)


def apply_limits(memory_limit_mb: int | None, cpu_seconds: int | None) -> None:
    """Cap the address space and CPU time of the current process.

    Degrades to a warning where ``resource`` or a given limit is unavailable.
    """
    if resource is None:
        logger.warning("resource module unavailable; only the wall-clock budget applies")  # pragma: no cover
        return  # pragma: no cover
    try:
        if cpu_seconds:
            resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds + 1))
        if memory_limit_mb:
            memory_bytes = int(memory_limit_mb * 1024 * 1024)
            if hasattr(resource, "RLIMIT_AS"):
                resource.setrlimit(resource.RLIMIT_AS, (memory_bytes, memory_bytes))
            elif hasattr(resource, "RLIMIT_DATA"):  # pragma: no cover
                resource.setrlimit(resource.RLIMIT_DATA, (memory_bytes, memory_bytes))
    except (ValueError, OSError) as e:
        logger.warning(f"Could not apply resource limits: {e}")
