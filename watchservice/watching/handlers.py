# watchservice/watching/handlers.py

"""
Bridge between watchdog event callbacks and the notification loop
"""
import logging
import os
import queue
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileCreatedEvent,
    FileModifiedEvent,
    FileDeletedEvent,
    FileMovedEvent,
    DirCreatedEvent,
    DirModifiedEvent,
    DirDeletedEvent,
    DirMovedEvent
)

from .events import ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)


class ChangeEventHandler(FileSystemEventHandler):
    """
    Collects raw watchdog events into a queue for the notification loop.

    watchdog calls ``on_any_event`` from its dispatcher thread. The handler
    does no work there beyond queueing; translation into ``ChangeEvent``
    records happens on the loop thread through ``convert_event``.
    """

    def __init__(self, directory: Path, raw_events: "queue.Queue"):
        """
        Initialize change event handler

        Args:
            directory: Watched directory, used to compute relative names
            raw_events: Queue consumed by the notification loop
        """
        super().__init__()
        self.directory = Path(directory)
        self.raw_events = raw_events

        # FSEvents reports resolved paths, so names are matched against both
        self._bases = [os.fspath(self.directory)]
        real_directory = os.path.realpath(self.directory)
        if real_directory not in self._bases:
            self._bases.append(real_directory)

        self.stats = {
            'events_received': 0,
            'events_converted': 0,
            'events_dropped': 0,
            'last_raw_event': None,
        }

    def on_any_event(self, event: FileSystemEvent):
        """Queue every raw event for the loop thread"""
        self.stats['events_received'] += 1
        self.stats['last_raw_event'] = datetime.now()
        self.raw_events.put(event)

    def convert_event(self, event: FileSystemEvent) -> List[ChangeEvent]:
        """
        Convert a watchdog event into zero or more change events

        Moves become a deletion of the source name and a creation of the
        destination name; the half that falls outside the watched directory
        is dropped. Open and close notifications produce nothing.

        Args:
            event: Raw watchdog event

        Returns:
            List of change events, possibly empty
        """
        changes = []

        if isinstance(event, (FileCreatedEvent, DirCreatedEvent)):
            changes.append(self._make_change(ChangeKind.CREATED, event.src_path))
        elif isinstance(event, (FileModifiedEvent, DirModifiedEvent)):
            changes.append(self._make_change(ChangeKind.MODIFIED, event.src_path))
        elif isinstance(event, (FileDeletedEvent, DirDeletedEvent)):
            changes.append(self._make_change(ChangeKind.DELETED, event.src_path))
        elif isinstance(event, (FileMovedEvent, DirMovedEvent)):
            changes.append(self._make_change(ChangeKind.DELETED, event.src_path))
            changes.append(self._make_change(ChangeKind.CREATED, event.dest_path))

        changes = [change for change in changes if change is not None]

        if changes:
            self.stats['events_converted'] += 1
        else:
            self.stats['events_dropped'] += 1
            logger.debug(f"Dropping {event.event_type} event for {event.src_path}")

        return changes

    def _make_change(self, kind: ChangeKind, path) -> Optional[ChangeEvent]:
        name = self.relative_name(path)
        if name is None:
            return None
        return ChangeEvent(kind=kind, name=name)

    def relative_name(self, path) -> Optional[str]:
        """
        Get the name of ``path`` relative to the watched directory

        Returns:
            Relative name, or None for the directory itself and for paths
            outside it
        """
        if not path:
            return None

        path = os.fsdecode(path)
        for base in self._bases:
            try:
                name = os.path.relpath(path, base)
            except ValueError:
                # Different drive on Windows
                continue
            if name == os.curdir:
                return None
            if name != os.pardir and not name.startswith(os.pardir + os.sep):
                return name

        return None

    def get_stats(self) -> Dict[str, Any]:
        """Get handler statistics"""
        return self.stats.copy()
