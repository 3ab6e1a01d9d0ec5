"""WatchRegistry: maps each monitored path to its TailState and keeps the watches alive."""

import logging
import os
from typing import BinaryIO, Iterable, Protocol

from logsender.config import DEFAULT_CHUNK_SIZE, MonitorSpec
from logsender.errors import ReadError
from logsender.line_handlers import build_line_handler, resolve_line_handler_kind
from logsender.metrics import Metrics
from logsender.models import EventKind, NotificationEvent
from logsender.send_handlers import build_send_handler, resolve_send_handler_kind
from logsender.tail import TailState

logger = logging.getLogger(__name__)


class NotificationSource(Protocol):
    def subscribe(self, path: str) -> None: ...


def get_parent_directory(path: str) -> str:
    """Return *path* up to its last '/', or "" if there is none past index 0."""
    index = path.rfind("/")
    if index <= 0:
        return ""
    return path[:index]


def _same_file(a: BinaryIO, b: BinaryIO) -> bool:
    sa, sb = os.fstat(a.fileno()), os.fstat(b.fileno())
    return (sa.st_dev, sa.st_ino) == (sb.st_dev, sb.st_ino)


def _replaced_on_disk(state: TailState) -> bool:
    """True if *state.path* now names a different file than the one being read."""
    try:
        st = os.stat(state.path)
    except FileNotFoundError:
        return False
    if not state.is_open:
        return True
    fst = os.fstat(state.descriptor.fileno())
    return (st.st_dev, st.st_ino) != (fst.st_dev, fst.st_ino)


class WatchRegistry:
    """Owns every TailState; only the event loop thread may call into it.

    A path whose file does not exist yet is kept as *pending* with its parent
    directory watched, and is registered when its Create event arrives.
    """

    def __init__(
        self,
        source: NotificationSource,
        read_chunk_size: int = DEFAULT_CHUNK_SIZE,
        metrics: Metrics | None = None,
        line_stream=None,
    ):
        self._source = source
        self._chunk_size = read_chunk_size
        self._metrics = metrics or Metrics()
        self._line_stream = line_stream
        self._entries: dict[str, TailState] = {}
        self._pending: dict[str, MonitorSpec] = {}

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, path: str) -> TailState | None:
        return self._entries.get(path)

    @property
    def pending_paths(self) -> set[str]:
        return set(self._pending)

    def register_all(self, specs: Iterable[MonitorSpec]):
        """Register every spec, rejecting unknown handlers before touching any file."""
        specs = list(specs)
        for spec in specs:
            resolve_line_handler_kind(spec.line_handler)
            resolve_send_handler_kind(spec.send_handler)
        for spec in specs:
            self.register(spec)

    def register(self, spec: MonitorSpec):
        path = spec.path
        self.add_watch(path)

        try:
            fh = open(path, "rb")
        except FileNotFoundError:
            logger.warning("File %s does not exist yet, waiting for it to be created", path)
            self._fall_back_to_parent(path)
            if path not in self._entries:
                self._pending[path] = spec
            return
        except OSError as e:
            logger.error("Cannot open %s: %s", path, e)
            if path not in self._entries:
                self._pending[path] = spec
            return

        # The directory watch sees a replacement file even when the file watch
        # has already been moved onto it.
        parent = get_parent_directory(path)
        if parent:
            self._watch_directory(parent)

        self._pending.pop(path, None)
        state = self._entries.get(path)
        if state is None:
            try:
                state = TailState(
                    spec,
                    fh,
                    build_line_handler(spec.line_handler, self._line_stream),
                    build_send_handler(spec.send_handler, spec.sink),
                    chunk_size=self._chunk_size,
                    metrics=self._metrics,
                )
            except Exception:
                fh.close()
                raise
            self._entries[path] = state
            logger.info("Tailing %s (line=%s, send=%s)", path, spec.line_handler, spec.send_handler)
            return

        if state.is_open and _same_file(state.descriptor, fh):
            fh.close()
            return
        if state.is_open:
            self._retire_descriptor(state)
        state.replace_descriptor(fh)
        self._metrics.increment("recreations")
        logger.info("Reopened recreated file %s", path)

    def handle_event(self, event: NotificationEvent):
        path = event.path
        state = self._entries.get(path)
        spec = state.spec if state is not None else self._pending.get(path)
        if spec is None:
            return

        logger.debug("Event %s on %s", event.kind.value, path)
        self._metrics.increment("events_handled")
        reopened = False
        if event.kind is EventKind.CREATE:
            self.register(spec)
            state = self._entries.get(path)
        elif state is not None and _replaced_on_disk(state):
            logger.info("%s was replaced before its %s event was handled", path, event.kind.value)
            self.register(spec)
            reopened = True
        if state is not None and (reopened or event.kind in (EventKind.CREATE, EventKind.WRITE)):
            self._read(state)
        # Some backends drop the watch once the inode behind the path changes.
        self.add_watch(path)

    def add_watch(self, path: str):
        """Subscribe *path*, falling back to its parent directory if it is missing."""
        try:
            self._source.subscribe(path)
        except FileNotFoundError:
            logger.debug("Cannot watch missing path %s", path)
            self._fall_back_to_parent(path)

    def _watch_directory(self, path: str):
        try:
            self._source.subscribe(path)
        except FileNotFoundError:
            # Directory creation is not reported, so watching further up
            # would never lead back to the file.
            logger.warning("Directory %s does not exist; its files cannot be picked up", path)

    def close(self):
        for state in self._entries.values():
            state.close()
            state.send_handler.close()

    def _fall_back_to_parent(self, path: str):
        parent = get_parent_directory(path)
        if parent:
            self._watch_directory(parent)
        state = self._entries.get(path)
        if state is not None and state.is_open:
            self._retire_descriptor(state)

    def _retire_descriptor(self, state: TailState):
        """Drain what is left of a replaced or deleted file, then close it."""
        self._read(state)
        state.close()
        logger.info("Closed descriptor for %s", state.path)

    def _read(self, state: TailState):
        try:
            state.read_and_dispatch()
        except ReadError as e:
            logger.error("%s; will retry on the next event", e)
            self._metrics.increment("read_errors")
