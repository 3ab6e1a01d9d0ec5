"""Notification event model shared by the watcher, registry and event loop."""

from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"
    OTHER = "other"


@dataclass(frozen=True)
class NotificationEvent:
    path: str
    kind: EventKind
