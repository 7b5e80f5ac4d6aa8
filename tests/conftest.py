import io
import threading
from datetime import datetime, timezone

import pytest

from logagent.models import Level, LogEntry

FIXED_TIME = datetime(2018, 7, 21, 14, 34, 42, tzinfo=timezone.utc)


class SlowSink:
    """In-memory sink whose writes wait until released."""

    def __init__(self):
        self.lines: list[bytes] = []
        self.release = threading.Event()
        self.entered = threading.Event()

    def write(self, data: bytes) -> int:
        self.entered.set()
        self.release.wait(timeout=5)
        self.lines.append(data)
        return len(data)


class FailingSink:
    def __init__(self, exc: Exception):
        self._exc = exc
        self.calls = 0

    def write(self, data: bytes) -> int:
        self.calls += 1
        raise self._exc


@pytest.fixture
def buffer():
    return io.BytesIO()


@pytest.fixture
def make_entry():
    def _make(message="Hello World!", level=Level.INFO, fields=None):
        return LogEntry(message=message, level=level, time=FIXED_TIME, fields=fields or {})
    return _make


@pytest.fixture
def slow_sink():
    sink = SlowSink()
    yield sink
    sink.release.set()


@pytest.fixture
def failing_sink():
    return FailingSink
