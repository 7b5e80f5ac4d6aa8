"""Log entry model and severity levels."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any


class Level(IntEnum):
    """Severity levels, most severe first."""

    PANIC = 0
    FATAL = 1
    ERROR = 2
    WARN = 3
    INFO = 4
    DEBUG = 5


ALL_LEVELS: list[Level] = list(Level)

UNKNOWN_LEVEL = "UNKNOWN"


def level_name(level) -> str:
    """Convert a level to its upper-case name. ERROR becomes "ERROR".

    Anything that is not a known level maps to "UNKNOWN".
    """
    if isinstance(level, bool):
        return UNKNOWN_LEVEL
    try:
        return Level(level).name
    except ValueError:
        return UNKNOWN_LEVEL


@dataclass
class LogEntry:
    message: str = ""
    level: Level | int = Level.INFO
    time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    fields: dict[str, Any] = field(default_factory=dict)

    def dup(self) -> "LogEntry":
        """Return a copy that shares no field map with this entry."""
        return LogEntry(
            message=self.message,
            level=self.level,
            time=self.time,
            fields=dict(self.fields),
        )
