"""Notification source backed by a watchdog Observer.

Watchdog delivers events on its own threads; they are funnelled into a single
queue so the event loop can consume them one at a time.
"""

import logging
import os
import queue

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from logsender.errors import WatcherInitError
from logsender.models import EventKind, NotificationEvent

logger = logging.getLogger(__name__)

_EVENT_KINDS = {
    EVENT_TYPE_CREATED: EventKind.CREATE,
    EVENT_TYPE_MODIFIED: EventKind.WRITE,
    EVENT_TYPE_DELETED: EventKind.REMOVE,
}


def _normalize(path) -> str:
    return os.path.abspath(os.fsdecode(path))


class EventForwarder(FileSystemEventHandler):
    """Translates watchdog file events into NotificationEvents."""

    def __init__(self, sink: queue.Queue):
        super().__init__()
        self._sink = sink

    def on_any_event(self, event: FileSystemEvent):
        if event.is_directory:
            return
        src_path = _normalize(event.src_path)
        if event.event_type == EVENT_TYPE_MOVED:
            # The old name went away and the new name appeared.
            self._sink.put(NotificationEvent(src_path, EventKind.RENAME))
            self._sink.put(NotificationEvent(_normalize(event.dest_path), EventKind.CREATE))
            return
        self._sink.put(NotificationEvent(src_path, _EVENT_KINDS.get(event.event_type, EventKind.OTHER)))


class WatchdogNotificationSource:
    def __init__(self, observer=None):
        self._observer = observer or Observer()
        self._queue: queue.Queue = queue.Queue()
        self._handler = EventForwarder(self._queue)
        self._watches: dict[str, tuple[object, tuple[int, int]]] = {}

    def start(self):
        try:
            self._observer.start()
        except (OSError, RuntimeError) as e:
            raise WatcherInitError(f"Cannot start filesystem observer: {e}") from e
        logger.info("Filesystem observer started")

    def stop(self):
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join(timeout=5)

    def subscribe(self, path: str):
        """Watch *path*; raises FileNotFoundError if it does not exist.

        Subscribing again to the same file is a no-op, but a watch left on an
        inode that has since been replaced is dropped and scheduled afresh.
        """
        st = os.stat(path)
        identity = (st.st_dev, st.st_ino)
        current = self._watches.get(path)
        if current is not None:
            watch, watched_identity = current
            if watched_identity == identity:
                return
            self._unschedule(watch)
            del self._watches[path]

        try:
            watch = self._observer.schedule(self._handler, path, recursive=False)
        except FileNotFoundError:
            raise
        except OSError as e:
            logger.error("Failed to watch %s: %s", path, e)
            self.report_error(e)
            return
        self._watches[path] = (watch, identity)
        logger.debug("Watching %s", path)

    def report_error(self, error: Exception):
        self._queue.put(error)

    def get(self, timeout: float | None = None) -> NotificationEvent | Exception | None:
        """Return the next event or backend error, or None if *timeout* expires."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def _unschedule(self, watch):
        try:
            self._observer.unschedule(watch)
        except KeyError:
            pass
