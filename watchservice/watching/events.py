# watchservice/watching/events.py

from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime


class ChangeKind(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    name: str  # relative to the watched directory
    timestamp: datetime = field(default_factory=datetime.now, compare=False)

    def __str__(self):
        return f"{self.kind.value}: {self.name}"
