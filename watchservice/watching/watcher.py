# watchservice/watching/watcher.py

"""
Public watcher handle
"""
import logging
from os import PathLike
from pathlib import Path
from typing import Optional, Dict, Any, List, Callable, Union

from ..utils.config import WatcherConfig
from .events import ChangeEvent
from .errors import PlatformIoError
from .loop import WatchLoop
from .signal import EventSignal

logger = logging.getLogger(__name__)


class DirectoryWatcher:
    """
    Watches a single directory and lets the caller block until it changes.

    Example:
        with DirectoryWatcher("/tmp/incoming") as watcher:
            Path("/tmp/incoming/a.txt").write_text("hello")
            watcher.wait_for_event()

    ``wait_for_event()`` returns once per batch the platform delivers, not
    once per filesystem operation: rapid successive changes may be reported
    by a single wakeup.
    """

    def __init__(self, directory: Union[str, PathLike],
                 config: Optional[WatcherConfig] = None):
        """
        Initialize directory watcher

        Args:
            directory: Directory to watch; must exist before ``start()``
            config: Watcher settings (defaults if omitted)
        """
        self._directory = Path(directory)
        self.config = config or WatcherConfig()

        self._signal = EventSignal()
        self._loop = WatchLoop(self._directory, self._signal, self.config)
        self._callbacks: List[Callable[[List[ChangeEvent]], Any]] = []

        logger.debug(f"DirectoryWatcher initialized for {self._directory}")

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def error(self) -> Optional[PlatformIoError]:
        """Platform error that ended the loop, if any"""
        return self._loop.error

    def start(self) -> "DirectoryWatcher":
        """
        Start watching in the background

        Blocks until the watch is registered. A watcher that was stopped is
        started again with a fresh loop.

        Returns:
            self, so construction and start can be chained

        Raises:
            RegistrationError: If the directory cannot be watched
        """
        if self._loop.is_alive() and not self._loop.cancelled:
            logger.warning(f"Already watching directory: {self._directory}")
            return self

        # A cancelled loop may still be shutting down; never reuse it
        if self._loop.started or self._loop.cancelled:
            logger.info(f"Restarting watcher for {self._directory}")
            self._signal = EventSignal()
            self._loop = WatchLoop(self._directory, self._signal, self.config)

        self._loop.callbacks = list(self._callbacks)
        self._loop.start()
        return self

    def stop(self):
        """Request the loop to stop; returns without waiting for it"""
        self._loop.stop()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the background loop to finish after ``stop()``

        Returns:
            True if the loop has exited
        """
        return self._loop.join(timeout)

    def is_ready(self) -> bool:
        """Check whether the watch is registered and listening"""
        return self._loop.ready.is_set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the watch is registered"""
        return self._loop.ready.wait(timeout)

    def is_alive(self) -> bool:
        """Check whether events can still be delivered"""
        return self._loop.is_alive()

    def wait_for_event(self, timeout: Optional[float] = None) -> bool:
        """
        Block until a change batch has been observed

        Args:
            timeout: Maximum time to wait in seconds (None waits forever)

        Returns:
            True if a change was observed, False on timeout or once the
            loop has terminated with nothing left pending
        """
        return self._signal.wait(timeout)

    def register_callback(self, callback: Callable[[List[ChangeEvent]], Any]):
        """
        Register a callback for each batch of changes

        Callbacks run on the loop thread; exceptions they raise are logged.
        """
        self._callbacks.append(callback)
        if self._loop.is_alive():
            self._loop.register_callback(callback)

    def get_status(self) -> Dict[str, Any]:
        """Get watcher status"""
        return self._loop.get_status()

    def __enter__(self) -> "DirectoryWatcher":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        self.join(self.config.join_timeout)

    def __repr__(self):
        return f"DirectoryWatcher({str(self._directory)!r}, ready={self.is_ready()})"
