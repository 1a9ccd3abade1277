"""Destinations for forwarded lines."""

from __future__ import annotations

import logging
from typing import Protocol


class MessageSink(Protocol):
    """Protocol for anything that accepts forwarded lines.

    Implementations own connection handling, buffering and retries.
    ``deliver`` is called synchronously from a monitoring thread.
    """

    def deliver(self, line: str) -> None:
        """Hand one line over for delivery."""
        ...


class LoggerSink:
    """Forwards lines as records of a dedicated logger.

    The logger's handlers decide where lines go; ``LoggingManager`` attaches
    a socket handler pointing at the remote collector.
    """

    def __init__(self, logger: logging.Logger, level: int = logging.INFO):
        self.logger = logger
        self.level = level

    def deliver(self, line: str) -> None:
        # Lines are passed as arguments so '%' in content is never interpreted.
        self.logger.log(self.level, "%s", line)
