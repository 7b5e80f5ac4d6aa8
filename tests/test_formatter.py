"""Tests for the Logstash JSON formatter."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from logagent.errors import FormatError
from logagent.formatter import LogAgentFormatter, default_formatter, format_timestamp
from logagent.models import Level
from logagent.pool import EntryPool

FIXED_TIME = datetime(2018, 7, 21, 14, 34, 42, tzinfo=timezone.utc)


class TestHelloWorld:
    def test_exact_line(self, make_entry):
        formatter = default_formatter({"app_id": "foo"})
        result = formatter.format(make_entry())
        assert result == (
            b'{"@timestamp":"2018-07-21T14:34:42.000Z","@version":"1",'
            b'"app_id":"foo","level":"INFO","message":"Hello World!"}\n'
        )

    def test_output_is_newline_terminated_json(self, make_entry):
        result = default_formatter().format(make_entry(fields={"k": "v"}))
        assert result.endswith(b"\n")
        assert result.count(b"\n") == 1
        parsed = json.loads(result.decode("utf-8"))
        for key in ("@timestamp", "level", "message", "@version"):
            assert key in parsed

    def test_same_entry_formats_identically(self, make_entry):
        formatter = default_formatter({"app_id": "foo"})
        fields = {"category": "db", "Key1": "Value1", "n": 3}
        first = formatter.format(make_entry(fields=dict(fields)))
        second = formatter.format(make_entry(fields=dict(fields)))
        assert first == second


class TestDefaultFormatter:
    def test_version_added(self):
        assert default_formatter({}).fields == {"@version": "1"}

    def test_version_not_overridden(self):
        formatter = default_formatter({"@version": "2"})
        assert formatter.fields["@version"] == "2"

    def test_caller_fields_not_mutated(self):
        fields = {"app_id": "foo"}
        default_formatter(fields)
        assert fields == {"app_id": "foo"}

    def test_empty_fields_with_category_and_extra(self, make_entry):
        formatter = default_formatter({})
        entry = make_entry(
            message="message bla bla", level=Level.DEBUG,
            fields={"category": "test", "Key1": "Value1"},
        )
        parsed = json.loads(formatter.format(entry))
        assert parsed["message"] == "message bla bla Key1=Value1"
        assert parsed["level"] == "DEBUG"
        assert parsed["category"] == "test"
        assert parsed["@version"] == "1"
        assert parsed["@timestamp"] == "2018-07-21T14:34:42.000Z"
        assert "Key1" not in parsed


class TestFieldMerge:
    def test_entry_field_wins_over_static(self, make_entry):
        formatter = default_formatter({"app_id": "foo"})
        parsed = json.loads(formatter.format(make_entry(fields={"app_id": "bar"})))
        assert parsed["app_id"] == "bar"
        assert parsed["message"] == "Hello World!"

    def test_caller_entry_not_mutated(self, make_entry):
        formatter = default_formatter({"app_id": "foo"})
        entry = make_entry(fields={"Key1": "Value1"})
        formatter.format(entry)
        assert entry.fields == {"Key1": "Value1"}
        assert entry.message == "Hello World!"

    def test_no_split_keeps_all_fields_as_keys(self, make_entry):
        formatter = default_formatter({}, split_extras=False)
        parsed = json.loads(formatter.format(make_entry(fields={"Key1": "Value1", "n": 2})))
        assert parsed["Key1"] == "Value1"
        assert parsed["n"] == 2
        assert parsed["message"] == "Hello World!"

    def test_reserved_keys_override_fields(self, make_entry):
        formatter = default_formatter({}, split_extras=False)
        parsed = json.loads(formatter.format(make_entry(fields={"level": "custom"})))
        assert parsed["level"] == "INFO"

    def test_field_map_renames_reserved_keys(self, make_entry):
        formatter = default_formatter({}, field_map={"message": "msg", "@timestamp": "ts"})
        parsed = json.loads(formatter.format(make_entry()))
        assert parsed["msg"] == "Hello World!"
        assert parsed["ts"] == "2018-07-21T14:34:42.000Z"
        assert "message" not in parsed

    def test_pooled_record_released_between_calls(self, make_entry):
        pool = EntryPool()
        formatter = default_formatter({"app_id": "foo"}, pool=pool)
        formatter.format(make_entry(fields={"first": "1"}))
        assert len(pool) == 1
        parsed = json.loads(formatter.format(make_entry()))
        assert parsed["message"] == "Hello World!"
        assert len(pool) == 1


class TestExtras:
    def test_sorted_extras(self, make_entry):
        formatter = default_formatter({})
        entry = make_entry(message="msg", fields={"Key2": "Value2", "Key1": "Value1"})
        parsed = json.loads(formatter.format(entry))
        assert parsed["message"] == "msg Key1=Value1 Key2=Value2"

    def test_disable_sorting_keeps_insertion_order(self, make_entry):
        formatter = default_formatter({}, disable_sorting=True)
        entry = make_entry(message="msg", fields={"Key2": "Value2", "Key1": "Value1"})
        parsed = json.loads(formatter.format(entry))
        assert parsed["message"] == "msg Key2=Value2 Key1=Value1"

    def test_value_with_space_quoted(self, make_entry):
        formatter = default_formatter({})
        parsed = json.loads(formatter.format(make_entry(message="m", fields={"Key": "a b"})))
        assert parsed["message"] == 'm Key="a b"'

    def test_simple_value_unquoted(self, make_entry):
        formatter = default_formatter({})
        parsed = json.loads(formatter.format(make_entry(message="m", fields={"Key": "simple"})))
        assert parsed["message"] == "m Key=simple"

    def test_safe_punctuation_unquoted(self, make_entry):
        formatter = default_formatter({})
        value = "a-b.c_d/e@f^g+h"
        parsed = json.loads(formatter.format(make_entry(message="m", fields={"k": value})))
        assert parsed["message"] == f"m k={value}"

    def test_quote_escapes_inner_quotes(self, make_entry):
        formatter = default_formatter({})
        parsed = json.loads(formatter.format(make_entry(message="m", fields={"k": 'say "hi"'})))
        assert parsed["message"] == 'm k="say \\"hi\\""'

    def test_empty_value_unquoted_by_default(self, make_entry):
        formatter = default_formatter({})
        parsed = json.loads(formatter.format(make_entry(message="m", fields={"k": ""})))
        assert parsed["message"] == "m k="

    def test_empty_value_quoted_when_enabled(self, make_entry):
        formatter = default_formatter({}, quote_empty_fields=True)
        parsed = json.loads(formatter.format(make_entry(message="m", fields={"k": ""})))
        assert parsed["message"] == 'm k=""'

    def test_non_string_values_stringified(self, make_entry):
        formatter = default_formatter({})
        parsed = json.loads(formatter.format(make_entry(message="m", fields={"n": 42, "f": 1.5})))
        assert parsed["message"] == "m f=1.5 n=42"

    def test_empty_message_has_no_leading_space(self, make_entry):
        formatter = default_formatter({})
        parsed = json.loads(formatter.format(make_entry(message="", fields={"k": "v"})))
        assert parsed["message"] == "k=v"


class TestErrorValues:
    def test_error_field_converted_to_text(self, make_entry):
        formatter = default_formatter({"error": None})
        entry = make_entry(fields={"error": ValueError("boom")})
        parsed = json.loads(formatter.format(entry))
        assert parsed["error"] == "boom"

    def test_error_extra_converted_to_text(self, make_entry):
        formatter = default_formatter({})
        entry = make_entry(message="failed", fields={"err": RuntimeError("disk full")})
        parsed = json.loads(formatter.format(entry))
        assert parsed["message"] == 'failed err="disk full"'


class TestLevels:
    def test_unknown_level(self, make_entry):
        parsed = json.loads(default_formatter().format(make_entry(level=99)))
        assert parsed["level"] == "UNKNOWN"

    @pytest.mark.parametrize("level", list(Level))
    def test_every_level_name(self, make_entry, level):
        parsed = json.loads(default_formatter().format(make_entry(level=level)))
        assert parsed["level"] == level.name


class TestSerializationFailure:
    def test_unencodable_value_raises_format_error(self, make_entry):
        formatter = default_formatter({}, split_extras=False)
        with pytest.raises(FormatError):
            formatter.format(make_entry(fields={"obj": object()}))

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_float_raises_format_error(self, make_entry, value):
        formatter = default_formatter({}, split_extras=False)
        with pytest.raises(FormatError):
            formatter.format(make_entry(fields={"x": value}))

    def test_record_released_on_failure(self, make_entry):
        pool = EntryPool()
        formatter = LogAgentFormatter({}, split_extras=False, pool=pool)
        with pytest.raises(FormatError):
            formatter.format(make_entry(fields={"obj": object()}))
        assert len(pool) == 1


class TestFormatTimestamp:
    def test_millisecond_precision(self):
        ts = FIXED_TIME.replace(microsecond=123456)
        assert format_timestamp(ts) == "2018-07-21T14:34:42.123Z"

    def test_converts_to_utc(self):
        tz = timezone(timedelta(hours=2))
        ts = datetime(2018, 7, 21, 16, 34, 42, tzinfo=tz)
        assert format_timestamp(ts) == "2018-07-21T14:34:42.000Z"

    def test_naive_treated_as_utc(self):
        assert format_timestamp(datetime(2018, 7, 21, 14, 34, 42)) == "2018-07-21T14:34:42.000Z"

    def test_utf8_message(self, make_entry):
        result = default_formatter().format(make_entry(message="café ☃"))
        assert json.loads(result.decode("utf-8"))["message"] == "café ☃"
