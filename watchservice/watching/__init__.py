# watchservice/watching/__init__.py

"""
watchservice Watching Module
Directory change notification with a blocking wait-for-event contract
"""
from .errors import WatchServiceError, RegistrationError, PlatformIoError
from .events import ChangeEvent, ChangeKind
from .signal import EventSignal
from .handlers import ChangeEventHandler
from .loop import WatchLoop
from .watcher import DirectoryWatcher

__all__ = [
    'WatchServiceError',
    'RegistrationError',
    'PlatformIoError',
    'ChangeEvent',
    'ChangeKind',
    'EventSignal',
    'ChangeEventHandler',
    'WatchLoop',
    'DirectoryWatcher',
]
