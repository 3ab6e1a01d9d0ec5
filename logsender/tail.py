"""TailState: per-file read offset and line extraction."""

import logging
import os
from typing import BinaryIO

from logsender.config import DEFAULT_CHUNK_SIZE, MonitorSpec
from logsender.errors import PublishError, ReadError
from logsender.line_handlers import LineHandler
from logsender.metrics import Metrics
from logsender.send_handlers import SendHandler

logger = logging.getLogger(__name__)

LINE_SEP = b"\n"


class TailState:
    """Reads complete lines appended to one file and pushes them through its handlers.

    ``offset`` counts the bytes of complete lines already dispatched. Bytes of a
    trailing line with no separator yet are held in memory and completed by the
    next read, so the descriptor position is ``offset + len(partial)``.
    """

    def __init__(
        self,
        spec: MonitorSpec,
        descriptor: BinaryIO,
        line_handler: LineHandler,
        send_handler: SendHandler,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        metrics: Metrics | None = None,
    ):
        self.spec = spec
        self.path = spec.path
        self.line_handler = line_handler
        self.send_handler = send_handler
        self.offset = 0
        self._descriptor: BinaryIO | None = descriptor
        self._partial = bytearray()
        self._chunk_size = chunk_size
        self._metrics = metrics or Metrics()

    @property
    def descriptor(self) -> BinaryIO | None:
        return self._descriptor

    @property
    def is_open(self) -> bool:
        return self._descriptor is not None and not self._descriptor.closed

    @property
    def pending_bytes(self) -> int:
        return len(self._partial)

    def replace_descriptor(self, descriptor: BinaryIO):
        """Swap in a descriptor for a recreated file; tailing restarts at byte 0."""
        self.close()
        self._descriptor = descriptor
        self.offset = 0
        self._partial.clear()

    def close(self):
        if self._descriptor is not None and not self._descriptor.closed:
            self._descriptor.close()

    def read_and_dispatch(self) -> int:
        """Dispatch every complete line appended since the last call.

        Returns the number of lines handed to the line handler. Reaching the
        current end of the file is the normal stop condition; a failed read
        raises ReadError and leaves the descriptor as it is.
        """
        if not self.is_open:
            return 0

        self._check_truncation()

        dispatched = 0
        while True:
            try:
                chunk = self._descriptor.read(self._chunk_size)
            except OSError as e:
                raise ReadError(self.path, e) from e
            if not chunk:
                break

            start = 0
            while True:
                end = chunk.find(LINE_SEP, start)
                if end < 0:
                    break
                raw = bytes(self._partial) + chunk[start:end]
                self._partial.clear()
                self.offset += len(raw) + len(LINE_SEP)
                self._dispatch(raw)
                dispatched += 1
                start = end + len(LINE_SEP)
            self._partial += chunk[start:]

        if dispatched:
            logger.debug("%s: dispatched %d line(s), offset=%d", self.path, dispatched, self.offset)
        return dispatched

    def _check_truncation(self):
        try:
            size = os.fstat(self._descriptor.fileno()).st_size
        except OSError as e:
            raise ReadError(self.path, e) from e
        if size < self.offset + len(self._partial):
            logger.info("File truncated: %s (size=%d, offset=%d)", self.path, size, self.offset)
            self._descriptor.seek(0)
            self.offset = 0
            self._partial.clear()
            self._metrics.increment("truncations")

    def _dispatch(self, raw: bytes):
        line = raw.decode("utf-8", errors="replace")
        try:
            message = self.line_handler.transform(line)
        except ValueError as e:
            logger.warning("Skipping malformed line in %s: %s", self.path, e)
            self._metrics.increment("malformed_lines")
            return

        try:
            self.send_handler.send(message)
        except PublishError as e:
            logger.warning("Dropped line from %s: %s", self.path, e)
            self._metrics.increment("publish_errors")
            return
        self._metrics.increment("lines_dispatched")
