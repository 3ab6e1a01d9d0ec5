"""Log Sender entry point.

Exit codes: 1 usage, 2 configuration, 3 watcher start-up, 4 unknown handler.
"""

import argparse
import logging
import os
import signal
import sys

from logsender.config import default_config_path, load_config, log_run_config
from logsender.errors import ConfigError, UnknownHandlerError, WatcherInitError
from logsender.event_loop import EventLoop
from logsender.metrics import Metrics
from logsender.notifier import WatchdogNotificationSource
from logsender.registry import WatchRegistry

logger = logging.getLogger(__name__)

EXIT_USAGE = 1
EXIT_CONFIG = 2
EXIT_WATCHER = 3
EXIT_HANDLER = 4


class _UsageParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_cli_parser() -> argparse.ArgumentParser:
    parser = _UsageParser(
        prog="logsender",
        description="Tail log files and publish each line to Redis",
    )
    parser.add_argument(
        "config", nargs="?", default=None,
        help="Path to the JSON/YAML config (default: $CONFIG_PATH or config.json)",
    )
    parser.add_argument(
        "--log-level", default=os.environ.get("LOG_LEVEL", "INFO"),
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def main(argv: list[str] | None = None):
    args = build_cli_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [LOGSENDER] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config or default_config_path())
    except ConfigError as e:
        logger.error("Unable to load the config file: %s", e)
        raise SystemExit(EXIT_CONFIG) from e
    log_run_config(config)

    metrics = Metrics()
    source = WatchdogNotificationSource()
    registry = WatchRegistry(source, read_chunk_size=config.read_chunk_size, metrics=metrics)
    try:
        registry.register_all(config.monitors)
        source.start()
    except UnknownHandlerError as e:
        logger.error("%s", e)
        registry.close()
        raise SystemExit(EXIT_HANDLER) from e
    except WatcherInitError as e:
        logger.error("Init watcher error: %s", e)
        registry.close()
        raise SystemExit(EXIT_WATCHER) from e

    loop = EventLoop(source, registry)

    def _signal_handler(sig, frame):
        logger.info("Shutdown signal received, stopping...")
        loop.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    logger.info("Log Sender running, tailing %d file(s). Press Ctrl+C to stop.", len(config.monitors))
    try:
        loop.run()
    finally:
        source.stop()
        registry.close()
        logger.info("Stats: %s", metrics.snapshot())
        logger.info("Log Sender stopped.")


if __name__ == "__main__":
    main()
