"""Logging setup for the shipper.

Two logger trees are configured: ``shipper`` for the program's own status
output, and ``shipper.lines`` for forwarded file content, which is sent to
the remote collector and never shown on the console.
"""

from __future__ import annotations

import json
import logging
import logging.config
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path

import yaml

from .config import DEFAULT_PORT
from .errors import ConfigurationError

LINES_LOGGER = "shipper.lines"

# LogRecord attributes that are not user supplied extras.
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "asctime",
        "taskName",
    }
)


class JsonLineFormatter(logging.Formatter):
    """Formats records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)  # Ensure serializable
                log_obj[key] = value
            except (TypeError, ValueError):
                log_obj[key] = str(value)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj)


class LoggingManager:
    """Configures status logging and the line forwarding loggers."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        host: str | None = None,
        port: int = DEFAULT_PORT,
        configuration_file: str | Path | None = None,
    ):
        """Initialize logging manager.

        Args:
            log_level: Level of the console output.
            log_file: Optional JSON-lines file receiving all status records.
            host: Remote collector receiving forwarded lines.
            port: Port of the remote collector.
            configuration_file: YAML ``dictConfig`` document replacing the
                default setup. A missing file falls back to the defaults.
        """
        self.log_level = getattr(logging, log_level.upper())
        self.log_file = Path(log_file) if log_file else None
        self.host = host
        self.port = port
        self.configuration_file = Path(configuration_file) if configuration_file else None

    def setup(self) -> None:
        """Apply the logging configuration.

        Raises:
            ConfigurationError: If the user configuration cannot be applied.
        """
        if self.configuration_file is not None:
            if self.configuration_file.exists():
                self._apply_configuration_file(self.configuration_file)
                return
            print(
                f"Specified logging configuration file {self.configuration_file} "
                "does not exist. Using default configuration.",
                file=sys.stderr,
            )

        self._setup_shipper_logger()
        self._setup_lines_logger()

    def line_logger(self, index: int) -> logging.Logger:
        """Logger forwarding the lines of the ``index``-th monitored file.

        Each file gets its own child of ``shipper.lines`` so files can be
        routed differently by a custom configuration.
        """
        return logging.getLogger(f"{LINES_LOGGER}.{index}")

    def _apply_configuration_file(self, path: Path) -> None:
        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
            logging.config.dictConfig(config)
        except (yaml.YAMLError, ValueError, TypeError, AttributeError, ImportError) as e:
            raise ConfigurationError(f"Invalid logging configuration {path}: {e}") from e

    def _setup_shipper_logger(self) -> None:
        """Console handler for humans, optional JSON file for machines."""
        logger = logging.getLogger("shipper")
        logger.setLevel(logging.DEBUG if self.log_file else self.log_level)
        logger.propagate = False
        logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JsonLineFormatter())
            logger.addHandler(file_handler)

        self.shipper_logger = logger

    def _setup_lines_logger(self) -> None:
        """Socket handler sending forwarded lines to the collector."""
        logger = logging.getLogger(LINES_LOGGER)
        logger.setLevel(logging.INFO)
        # Content must not reach the console handlers of the status logger.
        logger.propagate = False
        logger.handlers.clear()

        if self.host:
            # SocketHandler reconnects lazily with exponential backoff.
            logger.addHandler(logging.handlers.SocketHandler(self.host, self.port))
        else:
            logger.addHandler(logging.NullHandler())

        self.lines_logger = logger

    def shutdown(self) -> None:
        """Flush and close all handlers."""
        logging.shutdown()
