# watchservice/watching/loop.py

"""
Notification loop owning the platform watch for one directory
"""
import logging
import queue
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List, Callable

from watchdog.events import FileSystemEvent
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from ..utils.config import WatcherConfig
from .errors import WatchServiceError, RegistrationError, PlatformIoError
from .events import ChangeEvent
from .handlers import ChangeEventHandler
from .signal import EventSignal

logger = logging.getLogger(__name__)

# Pushed into the raw event queue to interrupt a blocked wait
_STOP = object()

# Upper bound on raw events folded into one batch
MAX_BATCH_EVENTS = 1024


class WatchLoop:
    """
    Runs the notification loop for one directory on a daemon thread.

    Registration happens on the loop thread, which is the only thread that
    touches the observer. ``start()`` blocks until registration has either
    succeeded or failed and re-raises a failure as ``RegistrationError`` in
    the caller's thread.

    Every batch of raw events that yields at least one ``ChangeEvent``
    raises the shared ``EventSignal`` exactly once. Whatever ends the loop,
    the signal is closed afterwards so nobody stays blocked on it.
    """

    def __init__(self, directory: Path,
                 signal: Optional[EventSignal] = None,
                 config: Optional[WatcherConfig] = None):
        """
        Initialize watch loop

        Args:
            directory: Directory to watch (must exist when started)
            signal: Signal raised once per batch (created if omitted)
            config: Watcher settings
        """
        self.directory = Path(directory)
        self.signal = signal or EventSignal()
        self.config = config or WatcherConfig()

        self.ready = threading.Event()
        self.error: Optional[PlatformIoError] = None
        self.callbacks: List[Callable[[List[ChangeEvent]], Any]] = []

        self._raw_events: "queue.Queue" = queue.Queue()
        self._cancelled = threading.Event()
        self._registered = threading.Event()
        self._registration_error: Optional[RegistrationError] = None
        self._thread: Optional[threading.Thread] = None
        self._handler: Optional[ChangeEventHandler] = None

        self.stats = {
            'start_time': None,
            'total_events': 0,
            'total_batches': 0,
            'last_event': None,
        }

    @property
    def started(self) -> bool:
        return self._thread is not None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def observer_kind(self) -> str:
        return "polling" if self.config.use_polling else "native"

    def start(self):
        """
        Register the watch and start the notification loop

        Raises:
            RegistrationError: If the directory is missing or the platform
                watch cannot be set up
        """
        if self._thread is not None:
            if self._thread.is_alive():
                logger.warning(f"Already watching directory: {self.directory}")
                return
            raise WatchServiceError("A stopped WatchLoop cannot be restarted")

        if not self.directory.exists():
            raise RegistrationError(f"Directory does not exist: {self.directory}",
                                    self.directory)
        if not self.directory.is_dir():
            raise RegistrationError(f"Not a directory: {self.directory}",
                                    self.directory)

        self._thread = threading.Thread(
            target=self._run,
            name=f"WatchLoop-{self.directory.name}",
            daemon=True
        )
        self._thread.start()

        if not self._registered.wait(self.config.ready_timeout):
            self.stop()
            raise RegistrationError(
                f"Timed out after {self.config.ready_timeout}s registering {self.directory}",
                self.directory
            )

        if self._registration_error is not None:
            raise self._registration_error

        if not self.ready.is_set():
            raise RegistrationError(
                f"Watch on {self.directory} was cancelled during registration",
                self.directory
            )

    def stop(self):
        """Request cancellation without waiting for the loop to exit"""
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        self._raw_events.put(_STOP)
        logger.debug(f"Cancellation requested for {self.directory}")

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the loop thread to exit

        Returns:
            True if the thread is no longer running
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_alive(self) -> bool:
        """Check if the loop is still delivering events"""
        return self._thread is not None and self._thread.is_alive()

    def register_callback(self, callback: Callable[[List[ChangeEvent]], Any]):
        """Register a callback receiving each batch of change events"""
        self.callbacks.append(callback)

    def _run(self):
        observer = None
        try:
            observer = self._register()
        except RegistrationError as e:
            self._registration_error = e
        except Exception as e:
            self._registration_error = RegistrationError(
                f"Failed to watch {self.directory}: {e}", self.directory
            )
            self._registration_error.__cause__ = e

        if self._registration_error is not None:
            logger.error(str(self._registration_error))
            self.signal.close()
            self._registered.set()
            return

        if self._cancelled.is_set():
            # stop() or a start() timeout arrived while registering
            self._release(observer)
            self.signal.close()
            self._registered.set()
            return

        logger.info(f"Watching directory [{self.directory}] for changes")
        self.stats['start_time'] = datetime.now()
        self.ready.set()
        self._registered.set()

        try:
            self._notification_loop(observer)
        except Exception as e:
            self.error = PlatformIoError(f"Notification loop failed for {self.directory}: {e}")
            logger.error(str(self.error), exc_info=True)
        finally:
            self._release(observer)
            self.signal.close()
            logger.info(f"Stopped watching directory: {self.directory}")

    def _register(self):
        """Create, schedule and start the platform observer"""
        if self.config.use_polling:
            observer = PollingObserver(timeout=self.config.poll_interval)
            logger.debug(f"Using polling observer (interval: {self.config.poll_interval}s)")
        else:
            observer = Observer()
            logger.debug(f"Using OS event observer ({type(observer).__name__})")

        self._handler = ChangeEventHandler(self.directory, self._raw_events)

        try:
            observer.schedule(self._handler, str(self.directory), recursive=False)
            observer.start()
        except Exception as e:
            self._abandon(observer)
            raise RegistrationError(
                f"Failed to watch {self.directory}: {e}", self.directory
            ) from e

        return observer

    def _abandon(self, observer):
        """Stop emitters left running by a failed observer start"""
        try:
            observer.stop()
        except Exception as e:
            logger.warning(f"Error cleaning up failed watch on {self.directory}: {e}")

    def _notification_loop(self, observer):
        while not self._cancelled.is_set():
            try:
                raw_event = self._raw_events.get(timeout=self.config.liveness_interval)
            except queue.Empty:
                if not self._rearm(observer):
                    break
                continue

            if raw_event is _STOP:
                logger.info("Received stop request, exiting...")
                break

            batch = self._drain(raw_event)
            if batch is None or self._cancelled.is_set():
                logger.info("Received stop request, exiting...")
                break

            self._deliver(batch)

            if not self._rearm(observer):
                break

    def _drain(self, first: FileSystemEvent) -> Optional[List[FileSystemEvent]]:
        """
        Collect the events arriving together with ``first``

        Returns:
            The batch, or None if a stop request was found in the queue
        """
        batch = [first]
        deadline = time.monotonic() + self.config.batch_latency

        while len(batch) < MAX_BATCH_EVENTS:
            remaining = deadline - time.monotonic()
            try:
                if remaining > 0:
                    raw_event = self._raw_events.get(timeout=remaining)
                else:
                    raw_event = self._raw_events.get_nowait()
            except queue.Empty:
                break

            if raw_event is _STOP:
                return None
            batch.append(raw_event)

        return batch

    def _deliver(self, batch: List[FileSystemEvent]):
        changes = []
        for raw_event in batch:
            changes.extend(self._handler.convert_event(raw_event))

        if not changes:
            return

        for change in changes:
            logger.info(f"Received {change.kind.value} event on {change.name}")

        self.stats['total_events'] += len(changes)
        self.stats['total_batches'] += 1
        self.stats['last_event'] = datetime.now()

        self.signal.signal()

        for callback in list(self.callbacks):
            try:
                callback(changes)
            except Exception as e:
                logger.error(f"Error in batch callback: {e}")

    def _rearm(self, observer) -> bool:
        """
        Check that the watch can keep delivering events

        Returns:
            False if the loop has to terminate
        """
        if not self.directory.is_dir():
            logger.warning(f"Watch target no longer valid: {self.directory}")
            return False

        dead_emitters = [emitter for emitter in observer.emitters if not emitter.is_alive()]
        if not observer.is_alive() or dead_emitters:
            self.error = PlatformIoError(f"Platform watch for {self.directory} stopped unexpectedly")
            logger.error(str(self.error))
            return False

        return True

    def _release(self, observer):
        """Stop the observer and release the platform watch"""
        if observer is None:
            return
        try:
            observer.stop()
            observer.join(timeout=self.config.join_timeout)
        except Exception as e:
            logger.error(f"Error releasing watch for {self.directory}: {e}")

    def get_status(self) -> Dict[str, Any]:
        """Get loop status"""
        handler_stats = self._handler.get_stats() if self._handler else {}

        return {
            'directory': str(self.directory),
            'observer': self.observer_kind,
            'is_ready': self.ready.is_set(),
            'is_alive': self.is_alive(),
            'error': str(self.error) if self.error else None,
            'stats': {**self.stats, **handler_stats},
        }
