"""Logstash JSON formatter: one compact JSON object per line."""

import json
import re
from datetime import datetime, timezone
from typing import Any, Mapping

from logagent.errors import FormatError
from logagent.models import LogEntry, level_name
from logagent.pool import EntryPool

# @timestamp layout: RFC 3339 in UTC with millisecond precision
TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.{millis:03d}Z"

FIELD_KEY_TIME = "@timestamp"
FIELD_KEY_MSG = "message"
FIELD_KEY_LEVEL = "level"
FIELD_KEY_CATEGORY = "category"

LOGSTASH_FIELDS = {"@version": "1"}

_SAFE_VALUE = re.compile(r"[A-Za-z0-9\-._/@^+]*")


def format_timestamp(ts: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``. Naive means UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    else:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime(TIME_FORMAT.format(millis=ts.microsecond // 1000))


def _plain_value(value: Any) -> Any:
    # The JSON encoder cannot represent exceptions, use their text instead
    if isinstance(value, BaseException):
        return str(value)
    return value


class LogAgentFormatter:
    """Formats entries as Logstash JSON lines.

    Static ``fields`` are merged under the entry's own fields. With
    ``split_extras`` on, only entry fields that name a static field (or
    ``category``) become JSON keys; the rest are appended to the message
    as ``key=value`` tokens.
    """

    def __init__(
        self,
        fields: Mapping[str, Any] | None = None,
        quote_empty_fields: bool = False,
        disable_sorting: bool = False,
        split_extras: bool = True,
        field_map: Mapping[str, str] | None = None,
        pool: EntryPool | None = None,
    ):
        self._fields = dict(fields or {})
        self._quote_empty_fields = quote_empty_fields
        self._disable_sorting = disable_sorting
        self._split_extras = split_extras
        self._field_map = dict(field_map or {})
        self._pool = pool if pool is not None else EntryPool()

    @property
    def fields(self) -> dict:
        return dict(self._fields)

    @property
    def pool(self) -> EntryPool:
        return self._pool

    def format(self, entry: LogEntry) -> bytes:
        """Serialize *entry* to a newline-terminated UTF-8 JSON line.

        The entry is copied into a pooled record first and never modified.

        Raises:
            FormatError: if a field value cannot be encoded as JSON.
        """
        record = self._copy_entry(entry)
        try:
            data, extras = self._split(record.fields)
            data[self._key(FIELD_KEY_TIME)] = format_timestamp(record.time)
            data[self._key(FIELD_KEY_LEVEL)] = level_name(record.level)
            data[self._key(FIELD_KEY_MSG)] = self._message(record.message, extras)
            try:
                serialized = json.dumps(
                    data, sort_keys=True, separators=(",", ":"), ensure_ascii=False,
                    allow_nan=False,
                )
            except (TypeError, ValueError) as e:
                raise FormatError(f"Failed to marshal fields to JSON: {e}") from e
            return (serialized + "\n").encode("utf-8")
        finally:
            self._pool.release(record)

    def _copy_entry(self, entry: LogEntry) -> LogEntry:
        """Copy *entry* into a pooled record, static fields first."""
        record = self._pool.acquire()
        record.message = entry.message
        record.level = entry.level
        record.time = entry.time
        record.fields.update(self._fields)
        record.fields.update(entry.fields)
        return record

    def _split(self, fields: dict) -> tuple[dict, dict]:
        data: dict = {}
        extras: dict = {}
        for key, value in fields.items():
            if (
                not self._split_extras
                or key in self._fields
                or key == FIELD_KEY_CATEGORY
            ):
                data[key] = _plain_value(value)
            else:
                extras[key] = _plain_value(value)
        return data, extras

    def _key(self, key: str) -> str:
        return self._field_map.get(key, key)

    def _message(self, message: str, extras: dict) -> str:
        if not extras:
            return message
        keys = extras.keys() if self._disable_sorting else sorted(extras)
        parts = [message] if message else []
        for key in keys:
            parts.append(f"{key}={self._render_value(extras[key])}")
        return " ".join(parts)

    def needs_quoting(self, text: str) -> bool:
        if self._quote_empty_fields and not text:
            return True
        return _SAFE_VALUE.fullmatch(text) is None

    def _render_value(self, value: Any) -> str:
        text = value if isinstance(value, str) else str(value)
        if not self.needs_quoting(text):
            return text
        return json.dumps(text, ensure_ascii=False)


def default_formatter(fields: Mapping[str, Any] | None = None, **options) -> LogAgentFormatter:
    """Return a formatter with ``@version`` set to "1" unless *fields* sets it.

    The caller's mapping is left untouched.
    """
    merged = dict(LOGSTASH_FIELDS)
    merged.update(fields or {})
    return LogAgentFormatter(fields=merged, **options)
