"""Send handlers: deliver a transformed line to its sink."""

import logging
from enum import Enum
from typing import Protocol

import redis

from logsender.config import SinkConfig
from logsender.errors import PublishError, UnknownHandlerError

logger = logging.getLogger(__name__)


class SendHandlerKind(str, Enum):
    REDIS = "redis"


class SendHandler(Protocol):
    def send(self, message: str) -> None: ...

    def close(self) -> None: ...


class RedisPublisher:
    """Publishes each message on a Redis pub/sub channel.

    Fire-and-forget: the subscriber count returned by PUBLISH is ignored and a
    failed publish is neither retried nor buffered.
    """

    def __init__(self, sink: SinkConfig, client: redis.Redis | None = None):
        self._sink = sink
        self._client = client or redis.Redis(
            host=sink.host,
            port=sink.port,
            password=sink.password or None,
            db=sink.db,
        )

    @property
    def channel(self) -> str:
        return self._sink.channel

    def send(self, message: str) -> None:
        try:
            self._client.publish(self._sink.channel, message)
        except redis.exceptions.RedisError as e:
            raise PublishError(
                f"Publish to {self._sink.addr}/{self._sink.channel} failed: {e}"
            ) from e

    def close(self):
        self._client.close()


def resolve_send_handler_kind(name: str) -> SendHandlerKind:
    try:
        return SendHandlerKind(name)
    except ValueError as e:
        raise UnknownHandlerError("send", name) from e


def build_send_handler(name: str, sink: SinkConfig) -> SendHandler:
    """Build the send handler registered under *name* (currently only "redis")."""
    resolve_send_handler_kind(name)
    logger.debug("Connecting publisher to %s db=%d channel=%s", sink.addr, sink.db, sink.channel)
    return RedisPublisher(sink)
