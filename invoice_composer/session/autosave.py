"""
Auto-Save Controller Module.

Debounces session snapshot writes: every edit reschedules a single
pending write ``delay`` seconds in the future, so a burst of edits
produces exactly one write holding the latest data.

Status observed by callers:
    - is_saving: True only while the write is in progress
    - last_saved_at: time of the last successful write

Usage:
    controller = AutoSaveController(SessionStore(MemoryStore()), SystemClock())
    controller.subscribe(lambda status: print(status))
    controller.schedule(invoice)

Author: Invoice Composer Team
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from config import get_config
from invoice_composer.models.invoice import InvoiceData
from invoice_composer.storage.stores import SessionStore
from invoice_composer.utils.logger import get_logger
from .clock import Clock, SystemClock, TimerHandle

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class AutoSaveStatus:
    """Snapshot of the controller state pushed to subscribers."""
    is_saving: bool
    last_saved_at: Optional[datetime]


StatusCallback = Callable[[AutoSaveStatus], None]


class AutoSaveController:
    """
    Debounced writer of session snapshots.

    Attributes:
        session_store: Destination for snapshots.
        clock: Time source and timer factory.
        delay: Debounce delay in seconds.

    Example:
        >>> controller = AutoSaveController(session_store, clock, delay=2.0)
        >>> controller.schedule(invoice)      # pending
        >>> controller.schedule(edited)       # replaces the pending write
    """

    def __init__(
        self,
        session_store: SessionStore,
        clock: Optional[Clock] = None,
        delay: Optional[float] = None
    ) -> None:
        self.session_store = session_store
        self.clock = clock or SystemClock()
        self.delay = delay if delay is not None else get_config("autosave.delay_seconds", 2.0)

        self._lock = threading.Lock()
        # Reentrant so a subscriber may cancel from inside a write
        self._write_lock = threading.RLock()
        self._handle: Optional[TimerHandle] = None
        self._pending: Optional[InvoiceData] = None
        self._generation = 0
        self._is_saving = False
        self._last_saved_at: Optional[datetime] = None
        self._closed = False
        self._subscribers: List[StatusCallback] = []

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def is_saving(self) -> bool:
        return self._is_saving

    @property
    def last_saved_at(self) -> Optional[datetime]:
        return self._last_saved_at

    @property
    def has_pending(self) -> bool:
        return self._handle is not None

    @property
    def status(self) -> AutoSaveStatus:
        return AutoSaveStatus(self._is_saving, self._last_saved_at)

    def restore(self, last_saved_at: Optional[datetime]) -> None:
        """Set the last-saved time from a restored session snapshot."""
        self._last_saved_at = last_saved_at
        self._notify()

    def reset_status(self) -> None:
        """Forget the last-saved time (the session was cleared)."""
        self.restore(None)

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """
        Observe status changes.

        Returns:
            Function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule(self, data: InvoiceData) -> None:
        """Replace any pending write with one for ``data`` after the delay."""
        with self._lock:
            if self._closed:
                logger.debug("Auto-save closed; ignoring schedule")
                return
            if self._handle is not None:
                self._handle.cancel()
            self._pending = data
            self._handle = self.clock.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """
        Drop the pending write, if any.

        A write already in progress is allowed to finish before this
        returns, but it no longer updates ``last_saved_at``. Callers may
        therefore clear the session right after cancelling.
        """
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                logger.debug("Pending auto-save cancelled")
            self._handle = None
            self._pending = None
            self._generation += 1
        # Wait out an in-flight write
        with self._write_lock:
            pass

    def flush(self) -> bool:
        """
        Write the pending snapshot now instead of waiting for the timer.

        Returns:
            True if a pending snapshot was written successfully.
        """
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            data, self._pending = self._pending, None
            generation = self._generation
        if data is None:
            return False
        return self._write(data, generation)

    def close(self) -> None:
        """Cancel the pending write and ignore later schedules."""
        self.cancel()
        with self._lock:
            self._closed = True
        logger.debug("Auto-save controller closed")

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _fire(self) -> None:
        with self._lock:
            data, self._pending = self._pending, None
            self._handle = None
            generation = self._generation
        if data is not None:
            self._write(data, generation)

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _write(self, data: InvoiceData, generation: int) -> bool:
        with self._write_lock:
            if not self._is_current(generation):
                logger.debug(f"Auto-save of {data.invoice_number} dropped after cancel")
                return False
            self._is_saving = True
            self._notify()
            try:
                saved = self.session_store.save(data)
                if saved and self._is_current(generation):
                    self._last_saved_at = self.clock.now()
                    logger.debug(f"Auto-saved invoice {data.invoice_number}")
                elif saved:
                    logger.debug(f"Auto-save of {data.invoice_number} finished after cancel")
                else:
                    logger.warning(f"Auto-save failed for invoice {data.invoice_number}")
            finally:
                self._is_saving = False
            self._notify()
            return saved

    def _notify(self) -> None:
        status = self.status
        for callback in list(self._subscribers):
            callback(status)


def describe_last_saved(last_saved_at: Optional[datetime], now: datetime) -> str:
    """
    Human-readable age of the last save.

    Example:
        >>> describe_last_saved(None, now)
        'Never'
        >>> describe_last_saved(now - timedelta(minutes=5), now)
        '5m ago'
    """
    if last_saved_at is None:
        return "Never"
    minutes = int((now - last_saved_at).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if minutes < 1440:
        return f"{minutes // 60}h ago"
    return last_saved_at.date().isoformat()
