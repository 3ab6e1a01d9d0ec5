"""Single-threaded event loop: one event is handled to completion before the next."""

import logging
import threading

from logsender.models import NotificationEvent
from logsender.registry import WatchRegistry

logger = logging.getLogger(__name__)


class EventLoop:
    def __init__(self, source, registry: WatchRegistry, poll_timeout: float = 1.0):
        self._source = source
        self._registry = registry
        self._poll_timeout = poll_timeout
        self._stop = threading.Event()

    def run(self):
        """Consume the notification stream until stop() is called."""
        logger.info("Event loop running")
        while not self._stop.is_set():
            item = self._source.get(timeout=self._poll_timeout)
            if item is None:
                continue
            if isinstance(item, NotificationEvent):
                self._registry.handle_event(item)
            else:
                logger.error("Watcher error: %s", item)
        logger.info("Event loop stopped")

    def stop(self):
        self._stop.set()
