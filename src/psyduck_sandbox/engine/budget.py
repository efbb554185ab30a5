# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Nested wall-clock budgets for units of execution.

Budgets are enforced with ``signal.setitimer`` when the clock runs on the main
thread of a POSIX process: the alarm handler raises :class:`BudgetExceeded`
between bytecodes, which interrupts pure-Python busy loops. Elsewhere the
clock only records deadlines and :meth:`BudgetClock.check` reports overruns
after the fact; a hard stop then requires the process runtime.

Executed code is compiled with calls to :meth:`BudgetClock.check` at the top
of every loop body, function body and exception handler, so a program that
swallows :class:`BudgetExceeded` is stopped again at the next iteration or
handler, and loops stop off the main thread as well.
"""

import signal
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from types import FrameType
from typing import Any

from loguru import logger

from psyduck_sandbox.errors import BudgetExceeded

_MIN_DELAY = 1e-4


@dataclass(frozen=True)
class Budget:
    label: str
    seconds: float
    deadline: float

    def remaining(self) -> float:
        return self.deadline - time.monotonic()


def alarm_available() -> bool:
    return hasattr(signal, "setitimer") and threading.current_thread() is threading.main_thread()


class BudgetClock:
    """A stack of nested budgets; an inner budget never outlives its parent."""

    # Re-fire interval after expiry, so executed code that swallows the
    # exception is interrupted again.
    RETRIGGER_INTERVAL = 0.05

    def __init__(self, enforce: bool | None = None):
        self._stack: list[Budget] = []
        self._enforce = enforce
        self._enforcing = False
        self._previous_handler: Any = None

    @property
    def enforcing(self) -> bool:
        return self._enforcing

    @property
    def current(self) -> Budget | None:
        return self._stack[-1] if self._stack else None

    @contextmanager
    def budget(self, label: str, seconds: float) -> Iterator[Budget]:
        """Run the enclosed block under a budget of ``seconds``, capped by any enclosing budget."""
        entry = Budget(label, seconds, time.monotonic() + seconds)
        parent = self.current
        if parent is not None and parent.deadline <= entry.deadline:
            entry = parent

        if parent is None:
            self._install()
        self._stack.append(entry)
        self._arm()
        try:
            yield entry
        finally:
            self._stack.pop()
            if self._stack:
                self._arm()
            else:
                self._uninstall()

    def check(self) -> None:
        """Raise if the innermost budget has already run out."""
        entry = self.current
        if entry is not None and entry.remaining() <= 0:
            raise BudgetExceeded(entry.label, entry.seconds)

    def _install(self) -> None:
        enforce = alarm_available() if self._enforce is None else self._enforce
        if enforce and not alarm_available():
            logger.warning("Alarm-based budgets need the main thread of a POSIX process; falling back to checks")
            enforce = False
        self._enforcing = enforce
        if enforce:
            self._previous_handler = signal.signal(signal.SIGALRM, self._on_alarm)

    def _uninstall(self) -> None:
        if self._enforcing:
            signal.setitimer(signal.ITIMER_REAL, 0)
            signal.signal(signal.SIGALRM, self._previous_handler or signal.SIG_DFL)
            self._previous_handler = None
        self._enforcing = False

    def _arm(self) -> None:
        if not self._enforcing:
            return
        delay = max(self._stack[-1].remaining(), _MIN_DELAY)
        signal.setitimer(signal.ITIMER_REAL, delay, self.RETRIGGER_INTERVAL)

    def _on_alarm(self, signum: int, frame: FrameType | None) -> None:
        entry = self.current
        if entry is None:
            return
        if entry.remaining() > 0:
            self._arm()
            return
        raise BudgetExceeded(entry.label, entry.seconds)

