"""Error kinds raised by the log agent hook."""


class HookError(Exception):
    """Base class for all log agent hook errors."""


class ConfigurationError(HookError):
    """Raised when a hook or config is built with invalid values."""


class FormatError(HookError):
    """Raised when an entry cannot be serialized to JSON."""


class WriteError(HookError):
    """Raised when the sink rejects a write."""


class MisuseError(HookError):
    """Raised when an entry is fired at a hook that has been stopped."""
