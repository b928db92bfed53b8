# watchservice/__init__.py

"""
watchservice
Single-directory filesystem change notification
"""
from .watching import (
    DirectoryWatcher,
    WatchLoop,
    EventSignal,
    ChangeEvent,
    ChangeKind,
    WatchServiceError,
    RegistrationError,
    PlatformIoError,
)

__version__ = "1.0.0"

__all__ = [
    'DirectoryWatcher',
    'WatchLoop',
    'EventSignal',
    'ChangeEvent',
    'ChangeKind',
    'WatchServiceError',
    'RegistrationError',
    'PlatformIoError',
]
