"""Hook configuration: frozen dataclass loaded from an optional YAML file and env vars."""

import logging
import os
from dataclasses import dataclass, field

import yaml

from logagent.errors import ConfigurationError
from logagent.formatter import default_formatter
from logagent.hook import DEFAULT_QUEUE_SIZE, AsyncHook, SyncHook

logger = logging.getLogger(__name__)

MODES = ("async", "sync")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _yaml_bool(value) -> bool:
    if isinstance(value, str):
        return _parse_bool(value)
    return bool(value)


@dataclass(frozen=True)
class HookConfig:
    queue_size: int = DEFAULT_QUEUE_SIZE
    mode: str = "async"
    block_when_full: bool = False
    quote_empty_fields: bool = False
    disable_sorting: bool = False
    split_extras: bool = True
    fields: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.mode not in MODES:
            raise ConfigurationError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.queue_size <= 0:
            raise ConfigurationError(f"queue_size must be positive, got {self.queue_size}")


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path or no file."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def load_config(path: str | None = None) -> HookConfig:
    """Build HookConfig from defaults <- YAML file <- env vars (highest priority)."""
    data = load_yaml_config(path)
    kwargs: dict = {
        "queue_size": data.get("queue_size", HookConfig.queue_size),
        "mode": data.get("mode", HookConfig.mode),
        "block_when_full": _yaml_bool(data.get("block_when_full", False)),
        "quote_empty_fields": _yaml_bool(data.get("quote_empty_fields", False)),
        "disable_sorting": _yaml_bool(data.get("disable_sorting", False)),
        "split_extras": _yaml_bool(data.get("split_extras", True)),
        "fields": dict(data.get("fields") or {}),
    }

    env = os.environ
    try:
        if "LOGAGENT_QUEUE_SIZE" in env:
            kwargs["queue_size"] = int(env["LOGAGENT_QUEUE_SIZE"])
        else:
            kwargs["queue_size"] = int(kwargs["queue_size"])
    except ValueError as e:
        raise ConfigurationError(f"queue_size must be an integer: {e}") from e
    if "LOGAGENT_MODE" in env:
        kwargs["mode"] = env["LOGAGENT_MODE"].strip().lower()
    for key in ("block_when_full", "quote_empty_fields", "disable_sorting", "split_extras"):
        env_key = f"LOGAGENT_{key.upper()}"
        if env_key in env:
            kwargs[key] = _parse_bool(env[env_key])

    return HookConfig(**kwargs)


def build_hook(sink, config: HookConfig | None = None):
    """Build a hook and its stop function for *sink* from *config*."""
    config = config or HookConfig()
    formatter = default_formatter(
        config.fields,
        quote_empty_fields=config.quote_empty_fields,
        disable_sorting=config.disable_sorting,
        split_extras=config.split_extras,
    )
    if config.mode == "sync":
        hook = SyncHook(sink, formatter)
    else:
        hook = AsyncHook(
            sink, formatter,
            queue_size=config.queue_size,
            block_when_full=config.block_when_full,
        )
    logger.info("Built %s hook (queue_size=%d)", config.mode, config.queue_size)
    return hook, hook.stop
