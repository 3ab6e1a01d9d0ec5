"""Configuration loading: monitor specs from a JSON or YAML document plus env overrides."""

import json
import logging
import os
from dataclasses import dataclass, field

import yaml

from logsender.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_CHUNK_SIZE = 1024
DEFAULT_REDIS_PORT = 6379


@dataclass(frozen=True)
class SinkConfig:
    addr: str = "localhost:6379"
    password: str = ""
    db: int = 0
    channel: str = ""

    @property
    def host(self) -> str:
        host, _, _ = self.addr.rpartition(":")
        return host or self.addr

    @property
    def port(self) -> int:
        _, sep, port = self.addr.rpartition(":")
        return int(port) if sep else DEFAULT_REDIS_PORT

    @classmethod
    def from_dict(cls, d: dict) -> "SinkConfig":
        sink = cls(
            addr=str(d.get("Addr", cls.addr)),
            password=str(d.get("Password") or ""),
            db=int(d.get("Db", 0)),
            channel=str(d.get("Channel", "")),
        )
        _, sep, port = sink.addr.rpartition(":")
        if sep and not (port.isdigit() and 0 < int(port) < 65536):
            raise ValueError(f"invalid Redis port in Addr {sink.addr!r}")
        return sink


@dataclass(frozen=True)
class MonitorSpec:
    path: str
    line_handler: str
    send_handler: str
    sink: SinkConfig = field(default_factory=SinkConfig)

    @classmethod
    def from_dict(cls, d: dict) -> "MonitorSpec":
        return cls(
            path=os.path.abspath(d["File"]),
            line_handler=d["Linehandler"],
            send_handler=d["Sendhandler"],
            sink=SinkConfig.from_dict(d.get("Redis") or {}),
        )


@dataclass(frozen=True)
class AppConfig:
    monitors: list[MonitorSpec] = field(default_factory=list)
    read_chunk_size: int = DEFAULT_CHUNK_SIZE


def default_config_path() -> str:
    return os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)


def _read_document(path: str) -> object:
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith((".yml", ".yaml")):
                return yaml.safe_load(f)
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse configuration file {path}: {e}") from e


def load_config(path: str | None = None) -> AppConfig:
    """Load and validate the monitor list from *path*.

    ``READ_CHUNK_SIZE`` in the environment overrides the read chunk size.
    """
    path = path or default_config_path()
    data = _read_document(path)
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    raw_monitors = data.get("Monitor")
    if not isinstance(raw_monitors, list) or not raw_monitors:
        raise ConfigError("'Monitor' must be a non-empty list")

    monitors: list[MonitorSpec] = []
    for index, item in enumerate(raw_monitors):
        if not isinstance(item, dict):
            raise ConfigError(f"Monitor[{index}] must be a mapping")
        try:
            monitors.append(MonitorSpec.from_dict(item))
        except KeyError as e:
            raise ConfigError(f"Monitor[{index}] is missing {e.args[0]!r}") from e
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Monitor[{index}] is invalid: {e}") from e

    try:
        chunk_size = int(os.environ.get("READ_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE)))
    except ValueError as e:
        raise ConfigError("READ_CHUNK_SIZE must be an integer") from e
    if chunk_size <= 0:
        raise ConfigError("READ_CHUNK_SIZE must be positive")

    logger.info("Loaded %d monitor(s) from %s", len(monitors), path)
    return AppConfig(monitors=monitors, read_chunk_size=chunk_size)


def log_run_config(config: AppConfig) -> None:
    """Log the resolved configuration, one line per monitored file."""
    logger.info("Using config (read chunk size=%d):", config.read_chunk_size)
    for spec in config.monitors:
        logger.info(
            "  monitor file=%s, linehandler=%s, sendhandler=%s, "
            "redis addr=%s, password=%s, db=%d, channel=%s",
            spec.path, spec.line_handler, spec.send_handler,
            spec.sink.addr, "***" if spec.sink.password else "", spec.sink.db, spec.sink.channel,
        )
