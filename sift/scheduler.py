# Sift: delayed callbacks
#
# TimerScheduler runs callbacks on threading.Timer threads.
# Debouncer coalesces bursts of triggers into one call after the last
# trigger goes quiet. It holds at most one pending handle.

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)


class TimerScheduler:
    """Default scheduler: one daemon timer thread per call."""

    def call_later(self, delay: float, callback: Callable, *args: Any) -> threading.Timer:
        timer = threading.Timer(delay, callback, args)
        timer.daemon = True
        timer.start()
        return timer


class Debouncer:
    """
    Trailing-edge debounce.

    Each trigger() cancels the pending call and schedules a new one
    `delay` seconds out. Only the last trigger in a burst fires.
    """

    def __init__(self, scheduler, delay: float, callback: Callable[[], Any]):
        self.scheduler = scheduler
        self.delay = delay
        self.callback = callback
        self._lock = threading.Lock()
        self._pending = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def trigger(self) -> None:
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            self._generation += 1
            self._pending = self.scheduler.call_later(self.delay, self._fire, self._generation)

    def cancel(self) -> bool:
        """Drop the pending call. Returns True if one was pending."""
        with self._lock:
            if self._pending is None:
                return False
            self._pending.cancel()
            self._pending = None
            self._generation += 1
            return True

    def flush(self) -> bool:
        """Run the pending call now instead of waiting. Call on shutdown."""
        if not self.cancel():
            return False
        self.callback()
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer that lost a cancel() race
            if generation != self._generation:
                logger.debug("Skipping superseded debounce call")
                return
            self._pending = None
        self.callback()
