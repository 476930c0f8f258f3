"""One-shot launch deadline that reports a timeout into the launch sink."""

import logging
import queue
import threading
from typing import Optional

from .errors import LaunchTimeout
from .monitor import LaunchOutcome

logger = logging.getLogger(__name__)


class DeadlineSource:
    """Puts a LaunchTimeout outcome into `sink` once `seconds` have passed."""

    def __init__(self, seconds: int, sink: queue.Queue):
        self.seconds = seconds
        self._sink = sink
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._cancelled = False
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def armed(self) -> bool:
        return self._timer is not None and not self._cancelled

    def arm(self) -> None:
        """Start the timer. A deadline of zero seconds disables it."""
        if self.seconds <= 0 or self._timer is not None:
            return
        self._timer = threading.Timer(self.seconds, self._fire)
        self._timer.daemon = True
        self._timer.start()

    def cancel(self) -> None:
        """Stop the timer. Safe to call more than once, armed or not."""
        with self._lock:
            self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()

    def _fire(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._fired = True
            # cancel() takes the lock, so it either beats this put or sees fired
            self._sink.put(LaunchOutcome(error=LaunchTimeout(self.seconds)))
        logger.warning(f"Tor launch deadline of {self.seconds}s expired")
