"""Bridge from the standard logging module to a log agent hook."""

import logging
from datetime import datetime, timezone

from logagent.models import Level, LogEntry

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

# Records from this package are never forwarded, so a failing sink
# cannot feed its own warnings back into the hook.
_OWN_LOGGER_PREFIX = "logagent"


def record_level(levelno: int) -> Level:
    if levelno >= logging.CRITICAL:
        return Level.FATAL
    if levelno >= logging.ERROR:
        return Level.ERROR
    if levelno >= logging.WARNING:
        return Level.WARN
    if levelno >= logging.INFO:
        return Level.INFO
    return Level.DEBUG


def entry_from_record(record: logging.LogRecord) -> LogEntry:
    """Convert a LogRecord into a LogEntry."""
    fields = {
        key: value for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }
    fields["logger"] = record.name
    if record.exc_info and record.exc_info[1] is not None:
        fields["error"] = record.exc_info[1]
    return LogEntry(
        message=record.getMessage(),
        level=record_level(record.levelno),
        time=datetime.fromtimestamp(record.created, tz=timezone.utc),
        fields=fields,
    )


class LogAgentHandler(logging.Handler):
    """logging.Handler that fires every record at a hook."""

    def __init__(self, hook, level=logging.NOTSET):
        super().__init__(level)
        self._hook = hook

    def emit(self, record: logging.LogRecord):
        if record.name == _OWN_LOGGER_PREFIX or record.name.startswith(_OWN_LOGGER_PREFIX + "."):
            return
        try:
            self._hook.fire(entry_from_record(record))
        except Exception:
            self.handleError(record)
