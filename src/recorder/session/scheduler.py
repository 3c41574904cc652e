"""Single-flight tick scheduler."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TickScheduler:
    """Holds at most one pending timer.

    Scheduling a new tick replaces any tick that has not fired yet, so two
    ticks can never be pending at the same time. A timer that was cancelled
    but had already started firing does not run its callback.
    """

    def __init__(self, timer_factory: Callable[..., threading.Timer] = threading.Timer):
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self.last_delay_ms: Optional[int] = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        """Run callback once after delay_ms, replacing any pending tick."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()

            self._generation += 1
            timer = self._timer_factory(delay_ms / 1000.0, self._fire, args=(self._generation, callback))
            timer.daemon = True
            self._timer = timer
            self.last_delay_ms = delay_ms
            timer.start()
        logger.debug(f"Next tick in {delay_ms} ms")

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self, generation: int, callback: Callable[[], None]) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        callback()
