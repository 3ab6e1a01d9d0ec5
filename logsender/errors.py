"""Error taxonomy for the log sender.

Only the entry point turns these into exit codes; everything below it raises.
"""


class LogSenderError(Exception):
    """Base class for all log sender errors."""


class ConfigError(LogSenderError):
    """The configuration document is missing or invalid."""


class WatcherInitError(LogSenderError):
    """The filesystem notification backend could not be started."""


class UnknownHandlerError(LogSenderError):
    """A monitor names a line or send handler that does not exist."""

    def __init__(self, role: str, name: str):
        super().__init__(f"Unknown {role} handler {name!r}")
        self.role = role
        self.name = name


class ReadError(LogSenderError):
    """A descriptor-level read failed (distinct from end of data)."""

    def __init__(self, path: str, cause: OSError):
        super().__init__(f"Read failed for {path}: {cause}")
        self.path = path
        self.cause = cause


class MalformedLineError(LogSenderError, ValueError):
    """A line handler could not make sense of a line."""


class PublishError(LogSenderError):
    """A message could not be delivered to the sink."""
