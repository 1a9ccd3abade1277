"""Command line entry point.

Monitors one or more files and forwards added lines to a remote log
collector, one monitoring thread per file.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading

from . import __version__
from .config import DEFAULT_PORT, ShipperConfig, load_config
from .errors import ConfigurationError
from .forwarder import FileShipperThread
from .logging_manager import LoggingManager
from .models import WatchTarget
from .sink import LoggerSink

logger = logging.getLogger(__name__)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "1", "on"):
        return True
    if lowered in ("false", "no", "0", "off"):
        return False
    raise argparse.ArgumentTypeError(f"Expected true or false, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shipper",
        description="Monitor files and forward added lines to a remote log collector.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--file",
        dest="files",
        action="append",
        metavar="PATH",
        help="Path to monitored file (repeatable)",
    )
    parser.add_argument("--host", help="Target hostname")
    parser.add_argument("--port", type=int, help=f"Target port (default: {DEFAULT_PORT})")
    parser.add_argument(
        "--skip",
        type=_parse_bool,
        metavar="true|false",
        help="Skip over existing data (default: true)",
    )
    parser.add_argument("--file-encoding", help="Encoding of the input file (default: UTF-8)")
    parser.add_argument(
        "--logging-configuration",
        metavar="PATH",
        help="Path to a YAML logging configuration (dictConfig schema)",
    )
    parser.add_argument("--config", metavar="PATH", help="YAML configuration file")
    parser.add_argument(
        "--poll-interval",
        dest="poll_interval_seconds",
        type=float,
        metavar="SECONDS",
        help="Polling interval where native notification is unavailable (default: 0.5)",
    )
    parser.add_argument(
        "--force-polling",
        action="store_true",
        default=None,
        help="Poll even where native notification is available",
    )
    parser.add_argument("--log-level", help="Console log level (default: INFO)")
    parser.add_argument("--log-file", metavar="PATH", help="JSON-lines file for the shipper's own log")
    return parser


def resolve_config(args: argparse.Namespace) -> ShipperConfig:
    """Combine the configuration file (if any) with command line overrides.

    Raises:
        ConfigurationError: If the result is incomplete or invalid.
    """
    config = load_config(args.config) if args.config else ShipperConfig()
    overrides = {key: value for key, value in vars(args).items() if key != "config"}
    config = config.merged(overrides)
    config.validate()
    return config


def start_shippers(config: ShipperConfig, logging_manager: LoggingManager) -> list[FileShipperThread]:
    """Start one monitoring thread per configured file."""
    threads = []
    for index, file in enumerate(config.files):
        thread = FileShipperThread(
            WatchTarget(file, config.file_encoding),
            # Per-file logger so files can be forwarded differently.
            LoggerSink(logging_manager.line_logger(index)),
            skip=config.skip,
            poll_interval=config.poll_interval_seconds,
            force_polling=config.force_polling,
        )
        thread.start()
        logger.info(f"Monitoring {file}")
        threads.append(thread)
    return threads


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = resolve_config(args)
    except ConfigurationError as e:
        print(f"shipper: {e}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 2

    logging_manager = LoggingManager(
        log_level=config.log_level,
        log_file=config.log_file,
        host=config.host,
        port=config.port,
        configuration_file=config.logging_configuration,
    )
    try:
        logging_manager.setup()
    except ConfigurationError as e:
        print(f"shipper: {e}", file=sys.stderr)
        return 2

    threads = start_shippers(config, logging_manager)

    shutdown = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: shutdown.set())
    try:
        # Wake periodically so threads that died on fatal errors are noticed.
        while not shutdown.wait(1.0):
            if not any(thread.is_alive() for thread in threads):
                logger.error("No file is monitored any more, exiting")
                return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    finally:
        for thread in threads:
            thread.stop(timeout=5.0)
        logging_manager.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
