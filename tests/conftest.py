import os
import queue

import pytest

from logsender.config import MonitorSpec, SinkConfig


class FakeSource:
    """In-memory notification source that behaves like the watchdog one."""

    def __init__(self):
        self.subscriptions: list[str] = []
        self.events: queue.Queue = queue.Queue()

    def subscribe(self, path: str):
        if not os.path.exists(path):
            raise FileNotFoundError(path)
        self.subscriptions.append(path)

    def get(self, timeout=None):
        try:
            return self.events.get(timeout=timeout)
        except queue.Empty:
            return None


class RecordingSender:
    def __init__(self):
        self.messages: list[str] = []
        self.closed = False

    def send(self, message: str) -> None:
        self.messages.append(message)

    def close(self) -> None:
        self.closed = True


class RecordingLineHandler:
    def __init__(self):
        self.lines: list[str] = []

    def transform(self, line: str) -> str:
        self.lines.append(line)
        return line


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def senders(monkeypatch):
    """Replace the Redis publisher with in-memory recorders, one per monitor."""
    created: dict[str, RecordingSender] = {}

    def _build(name, sink):
        sender = RecordingSender()
        created[sink.channel] = sender
        return sender

    monkeypatch.setattr("logsender.registry.build_send_handler", _build)
    return created


@pytest.fixture
def make_spec():
    def _make(path, line_handler="raw", send_handler="redis", channel="logs"):
        return MonitorSpec(
            path=str(path),
            line_handler=line_handler,
            send_handler=send_handler,
            sink=SinkConfig(addr="localhost:6379", channel=channel),
        )
    return _make
