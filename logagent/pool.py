"""Thread-safe pool of reusable entry records."""

import threading
from datetime import datetime, timezone

from logagent.models import Level, LogEntry

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class EntryPool:
    """Recycles LogEntry records so formatting does not allocate one per call.

    Every acquired record gets a fresh field map; a released record never
    carries its old keys into the next entry.
    """

    def __init__(self, max_size: int = 256):
        self._max_size = max_size
        self._free: list[LogEntry] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._free)

    def acquire(self) -> LogEntry:
        """Take an idle record, or allocate a new one when none is left."""
        with self._lock:
            entry = self._free.pop() if self._free else None
        if entry is None:
            entry = LogEntry(time=_EPOCH)
        entry.fields = {}
        return entry

    def release(self, entry: LogEntry):
        """Reset a record and return it to the pool."""
        entry.message = ""
        entry.level = Level.INFO
        entry.time = _EPOCH
        entry.fields = {}
        with self._lock:
            if len(self._free) < self._max_size:
                self._free.append(entry)
