"""
Clock abstraction for timers and timestamps.

The auto-save debounce and every persisted timestamp go through a Clock so
tests can drive time deterministically.

Author: Invoice Composer Team
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable

from invoice_composer.utils.helpers import utc_now


class TimerHandle(ABC):
    """A scheduled callback that can be cancelled before it fires."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running; no-op if it already ran."""


class Clock(ABC):
    """Source of the current time and of delayed callbacks."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""


class _ThreadingTimerHandle(TimerHandle):
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class SystemClock(Clock):
    """Wall clock with ``threading.Timer`` callbacks."""

    def now(self) -> datetime:
        return utc_now()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return _ThreadingTimerHandle(timer)
