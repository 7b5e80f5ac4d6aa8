"""Thread-safe delivery counters for a hook."""

import threading


class DeliveryStats:
    """Counts what happened to every entry handed to a hook."""

    def __init__(self):
        self._lock = threading.Lock()
        self._submitted = 0
        self._dropped = 0
        self._written = 0
        self._format_failed = 0
        self._write_failed = 0
        self._discarded = 0

    def record_submitted(self):
        with self._lock:
            self._submitted += 1

    def record_dropped(self):
        """Record an entry rejected because the queue was full."""
        with self._lock:
            self._dropped += 1

    def record_written(self):
        with self._lock:
            self._written += 1

    def record_format_failed(self):
        with self._lock:
            self._format_failed += 1

    def record_write_failed(self):
        with self._lock:
            self._write_failed += 1

    def record_discarded(self, count: int = 1):
        """Record entries still queued when the hook stopped."""
        with self._lock:
            self._discarded += count

    @property
    def written(self) -> int:
        with self._lock:
            return self._written

    @property
    def dropped(self) -> int:
        with self._lock:
            return self._dropped

    def snapshot(self) -> dict:
        """Read all counters at once."""
        with self._lock:
            return {
                "submitted": self._submitted,
                "dropped": self._dropped,
                "written": self._written,
                "format_failed": self._format_failed,
                "write_failed": self._write_failed,
                "discarded": self._discarded,
            }
