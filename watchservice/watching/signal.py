# watchservice/watching/signal.py

"""
Pending-event signal shared between the notification loop and a waiter
"""
import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class EventSignal:
    """
    Single pending flag guarded by a condition variable.

    The notification loop calls ``signal()`` once per batch; a waiter calls
    ``wait()`` which blocks until the flag is set and then clears it. Signals
    raised while nobody is waiting are kept, so a batch delivered before the
    waiter arrives still releases the next ``wait()`` immediately. Several
    signals before a wait collapse into one.
    """

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._pending = False
        self._closed = False

    def signal(self):
        """Mark an event as pending and wake any waiter"""
        with self._condition:
            self._pending = True
            self._condition.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until an event is pending, then consume it

        Args:
            timeout: Maximum time to wait in seconds (None waits forever)

        Returns:
            True if a pending event was consumed, False on timeout or when
            the signal was closed with nothing pending
        """
        with self._condition:
            self._condition.wait_for(lambda: self._pending or self._closed, timeout)
            if self._pending:
                self._pending = False
                return True
            return False

    def close(self):
        """Release all waiters; later waits no longer block"""
        with self._condition:
            if self._closed:
                return
            self._closed = True
            self._condition.notify_all()
        logger.debug("Event signal closed")

    def is_set(self) -> bool:
        """Check for a pending event without consuming it"""
        with self._condition:
            return self._pending

    @property
    def closed(self) -> bool:
        with self._condition:
            return self._closed
