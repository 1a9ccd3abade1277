"""Callbacks through which a watch engine reports what it observes."""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import IoFailure

logger = logging.getLogger(__name__)


class FileModificationListener:
    """Receiver of file state transitions for one monitored path.

    All callbacks run synchronously on the engine's thread, never
    concurrently for a single engine. Subclasses override what they need;
    the defaults do nothing except ``examination_failed``, which logs.
    """

    def no_such_file(self, path: Path) -> None:
        """The file does not exist right now or was just deleted."""

    def line_added(self, path: Path, line: str) -> None:
        """One decoded line of new or rotated content, in file order."""

    def file_rotated(self, path: Path) -> None:
        """The file was truncated or replaced.

        Called before the ``line_added`` calls for the rotated content.
        """

    def completely_read(self, path: Path) -> None:
        """A read pass reached the end of the file."""

    def examination_failed(self, path: Path, error: IoFailure) -> None:
        """A read pass failed; monitoring continues with the next trigger."""
        logger.error(f"Failed to read {path}: {error.cause}", exc_info=error)
