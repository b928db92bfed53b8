# watchservice/watching/errors.py

"""
Exceptions raised by the watching module
"""
from pathlib import Path
from typing import Optional


class WatchServiceError(Exception):
    """Base exception for all watchservice errors"""


class RegistrationError(WatchServiceError):
    """Raised when a directory watch cannot be registered"""

    def __init__(self, message: str, directory: Optional[Path] = None):
        super().__init__(message)
        self.directory = directory


class PlatformIoError(WatchServiceError):
    """Raised inside the notification loop when the platform watch fails"""
