"""Line handlers: transform a raw log line before it is sent."""

import sys
from enum import Enum
from typing import Protocol, TextIO

from logsender.errors import MalformedLineError, UnknownHandlerError

NGINX_MIN_FIELDS = 9
NGINX_TIME_FIELD = 3
NGINX_STATUS_FIELD = 8


class LineHandlerKind(str, Enum):
    RAW = "raw"
    NGINX = "nginx"


class LineHandler(Protocol):
    def transform(self, line: str) -> str: ...


class RawLineHandler:
    """Pass-through handler that also echoes every line to a diagnostic stream."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    def transform(self, line: str) -> str:
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(line + "\n")
        stream.flush()
        return line


class NginxAccessLogHandler:
    """Summarise an nginx access log line as its timestamp and status code.

    The line is split on single spaces, so for the default combined format
    field 3 is ``[10/Oct/2021:10:00:00`` (possibly followed by the zone) and
    field 8 is the status. Only the leading bracket is stripped.
    """

    def transform(self, line: str) -> str:
        fields = line.split(" ")
        if len(fields) < NGINX_MIN_FIELDS:
            raise MalformedLineError(
                f"expected at least {NGINX_MIN_FIELDS} fields, got {len(fields)}"
            )
        timestamp = fields[NGINX_TIME_FIELD].lstrip("[")
        status = fields[NGINX_STATUS_FIELD]
        return f"time = {timestamp}, code = {status}\n"


def resolve_line_handler_kind(name: str) -> LineHandlerKind:
    try:
        return LineHandlerKind(name)
    except ValueError as e:
        raise UnknownHandlerError("line", name) from e


def build_line_handler(name: str, stream: TextIO | None = None) -> LineHandler:
    """Build the line handler registered under *name* ("raw" or "nginx")."""
    kind = resolve_line_handler_kind(name)
    if kind is LineHandlerKind.RAW:
        return RawLineHandler(stream)
    return NginxAccessLogHandler()
