"""Forwarding of monitored file content to a message sink.

``ForwardingListener`` turns engine observations into deliveries and into
status messages for the user. ``FileShipperThread`` runs one engine per file
on its own thread.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from .engine import WatchEngine
from .errors import ShipperError
from .listener import FileModificationListener
from .models import MessageCategory, SkipState, WatchTarget
from .sink import MessageSink

logger = logging.getLogger(__name__)


class ForwardingListener(FileModificationListener):
    """Delivers added lines to a sink, honouring a skip policy.

    Status messages are logged only when their category differs from the
    previous one, so a file that stays missing is announced once.

    Attributes:
        sink: Destination of forwarded lines.
        skip: Suppression of content present at startup.
        last_category: Category of the last announced status.
    """

    def __init__(self, sink: MessageSink, skip: SkipState | None = None):
        self.sink = sink
        self.skip = skip if skip is not None else SkipState(active=False)
        self.last_category = MessageCategory.SENDING

    def no_such_file(self, path: Path) -> None:
        self._announce(
            MessageCategory.NO_SUCH_FILE,
            f"File at {path.absolute()} does not exist. "
            "Path will be monitored for newly added files.",
        )
        # A file created from now on only contains new data.
        self.skip.clear()

    def line_added(self, path: Path, line: str) -> None:
        if self.skip.active:
            return
        self._announce(
            MessageCategory.SENDING,
            f"Sending lines of {path.absolute()} (after non-normal state).",
        )
        self.sink.deliver(line)

    def file_rotated(self, path: Path) -> None:
        self._announce(
            MessageCategory.FILE_ROTATED,
            f"File at {path.absolute()} was rotated. Will send all lines of new file.",
        )

    def completely_read(self, path: Path) -> None:
        # End of file reached; everything after this point is new.
        self.skip.clear()

    def _announce(self, category: MessageCategory, message: str) -> None:
        if category is not self.last_category:
            logger.info(message)
            self.last_category = category


class FileShipperThread(threading.Thread):
    """Monitors one file and forwards its lines until stopped.

    A fatal monitoring error is logged and ends this thread only; threads
    of other files keep running.

    Attributes:
        target: Monitored file.
        engine: Watch engine driving the listener.
        error: Fatal error that ended monitoring, if any.
    """

    def __init__(
        self,
        target: WatchTarget,
        sink: MessageSink,
        skip: bool = True,
        poll_interval: float | None = None,
        force_polling: bool = False,
    ):
        """Initialize the monitoring thread.

        Args:
            target: File to monitor.
            sink: Destination of forwarded lines.
            skip: Ignore content present at startup; later additions are
                still forwarded.
            poll_interval: Seconds between passes when polling; engine
                default when ``None``.
            force_polling: Poll even where native notification works.
        """
        super().__init__(name=f"Monitor on {target.path}", daemon=True)
        self.target = target
        self.listener = ForwardingListener(sink, SkipState(active=skip))
        engine_options = {"force_polling": force_polling}
        if poll_interval is not None:
            engine_options["poll_interval"] = poll_interval
        self.engine = WatchEngine(target, self.listener, **engine_options)
        self.error: BaseException | None = None

    def run(self) -> None:
        """Monitor the file. Returns only when stopped or on fatal errors."""
        try:
            self.engine.run()
        except ShipperError as e:
            self.error = e
            logger.error(
                f"Failed to monitor {self.target.path}. "
                "Please file an issue including the dumped stack.",
                exc_info=True,
            )
        except OSError as e:
            self.error = e
            logger.error(f"Failed to monitor {self.target.path}: {e}", exc_info=True)

    def stop(self, timeout: float | None = None) -> None:
        """Stop monitoring and wait for the thread to finish."""
        self.engine.stop()
        if self.is_alive():
            self.join(timeout)
