"""Logstash JSON formatter and asynchronous delivery hook."""

from logagent.config import HookConfig, build_hook, load_config
from logagent.errors import (
    ConfigurationError,
    FormatError,
    HookError,
    MisuseError,
    WriteError,
)
from logagent.formatter import LogAgentFormatter, default_formatter
from logagent.handler import LogAgentHandler
from logagent.hook import AsyncHook, SyncHook, new_hook, new_hook_with_queue_size
from logagent.models import ALL_LEVELS, Level, LogEntry
from logagent.pool import EntryPool
from logagent.sinks import SocketSink, StreamSink

__all__ = [
    "ALL_LEVELS",
    "AsyncHook",
    "ConfigurationError",
    "EntryPool",
    "FormatError",
    "HookConfig",
    "HookError",
    "Level",
    "LogAgentFormatter",
    "LogAgentHandler",
    "LogEntry",
    "MisuseError",
    "SocketSink",
    "StreamSink",
    "SyncHook",
    "WriteError",
    "build_hook",
    "default_formatter",
    "load_config",
    "new_hook",
    "new_hook_with_queue_size",
]
