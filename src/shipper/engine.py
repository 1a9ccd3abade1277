"""Continuous monitoring of a single file path.

``WatchEngine`` keeps a native change notification subscription as close as
possible to the monitored file and runs a read pass whenever the file may
have changed. On file systems without native notification it polls instead.
Every observation is reported to a ``FileModificationListener``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from .ancestors import next_segment, resolve_watch_root
from .errors import IoFailure, NotificationUnsupported, NotWatchable
from .examiner import Absent, FileExaminer, ReadCursor, Rotated
from .listener import FileModificationListener
from .models import WatchTarget
from .notify import DirectoryNotifier, DirectorySubscription, NotificationKind, open_notifier

logger = logging.getLogger(__name__)

# Seconds between read passes when native notification is unavailable.
DEFAULT_POLL_INTERVAL = 0.5

# Seconds a subscription may stay silent before its directory is re-checked.
DEFAULT_RECHECK_INTERVAL = 1.0


class WatchEngine:
    """Tails one file through deletion, recreation and rotation.

    The engine runs on the thread that calls ``run`` and reports to its
    listener from that thread only. ``stop`` may be called from any thread.

    Attributes:
        target: Monitored file and its encoding.
        listener: Receiver of observations.
        cursor: Read position, owned by this engine.
        poll_interval: Seconds between passes in polling mode.
    """

    def __init__(
        self,
        target: WatchTarget,
        listener: FileModificationListener,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        force_polling: bool = False,
        recheck_interval: float = DEFAULT_RECHECK_INTERVAL,
        notifier_factory: Callable[..., DirectoryNotifier] = open_notifier,
        examiner: FileExaminer | None = None,
    ):
        """Initialize the engine.

        Args:
            target: Monitored file and its encoding.
            listener: Receiver of observations.
            poll_interval: Seconds between passes in polling mode.
            force_polling: Use polling even where native notification works.
            recheck_interval: Seconds after which a silent subscription is
                checked for validity.
            notifier_factory: Creates the notification backend; raises
                ``NotificationUnsupported`` to select polling.
            examiner: Reads the file. Defaults to a ``FileExaminer`` for the
                target's encoding.
        """
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.target = target
        self.listener = listener
        self.cursor = ReadCursor()
        self.poll_interval = poll_interval
        self._path = target.path.absolute()
        self._force_polling = force_polling
        self._recheck_interval = recheck_interval
        self._notifier_factory = notifier_factory
        self._examiner = examiner if examiner is not None else FileExaminer(target.encoding)
        self._stop_requested = threading.Event()
        self._subscription: DirectorySubscription | None = None
        self.polling = False

    def run(self) -> None:
        """Monitor the file until ``stop`` is called.

        Raises:
            NotWatchable: If no ancestor directory can be watched.
        """
        if not self._path.exists():
            self.listener.no_such_file(self._path)

        try:
            notifier = self._notifier_factory(force_polling=self._force_polling)
        except NotificationUnsupported as e:
            logger.info(f"{e}; polling {self._path} every {self.poll_interval}s")
            self.polling = True
            self._poll()
            return

        try:
            self._watch(notifier)
        finally:
            notifier.close()

    def stop(self) -> None:
        """Ask the engine to leave its loop. Returns immediately."""
        self._stop_requested.set()
        subscription = self._subscription
        if subscription is not None:
            subscription.wakeup()

    @property
    def stopped(self) -> bool:
        return self._stop_requested.is_set()

    @property
    def watched_directory(self) -> Path | None:
        """Directory currently watched natively, ``None`` while unregistered or polling."""
        subscription = self._subscription
        return subscription.directory if subscription is not None else None

    def _poll(self) -> None:
        while not self._stop_requested.is_set():
            self._examine()
            self._stop_requested.wait(self.poll_interval)

    def _watch(self, notifier: DirectoryNotifier) -> None:
        while not self._stop_requested.is_set():
            # Acquire a watch as close to the monitored file as possible.
            root = resolve_watch_root(self._path)
            segment = next_segment(root, self._path)
            try:
                subscription = notifier.register(root)
            except NotWatchable:
                if root.is_dir():
                    raise
                logger.debug(f"{root} vanished before it could be watched, retrying")
                continue

            self._subscription = subscription
            try:
                if segment is not None and (root / segment).is_dir():
                    # Created between resolving and registering.
                    continue
                if self._path.exists():
                    self._examine()
                self._await_events(subscription, segment)
            finally:
                self._subscription = None
                notifier.cancel(subscription)

    def _await_events(self, subscription: DirectorySubscription, segment: str | None) -> None:
        """Process events until the subscription must be replaced or stop is requested.

        Args:
            subscription: Active watch.
            segment: Name of the next directory towards the monitored file, or
                ``None`` when the subscription is on the file's parent.
        """
        name = self._path.name
        while not self._stop_requested.is_set():
            for event in subscription.take(timeout=self._recheck_interval):
                if self._stop_requested.is_set():
                    return

                if event.kind is NotificationKind.OVERFLOW:
                    # Lost events may have been modifications.
                    if self._path.exists():
                        self._examine()
                elif segment is None:
                    if event.name != name:
                        continue
                    if event.kind in (NotificationKind.CREATE, NotificationKind.MODIFY):
                        self._examine()
                    elif event.kind is NotificationKind.DELETE:
                        self.listener.no_such_file(self._path)
                elif event.kind is NotificationKind.CREATE and event.name == segment:
                    logger.debug(f"{subscription.directory / segment} created, moving watch closer")
                    return

            if not subscription.valid:
                logger.info(f"Watch on {subscription.directory} is no longer valid, re-acquiring")
                return

    def _examine(self) -> None:
        """Run read passes until the file is read to its end, reporting each one."""
        while True:
            try:
                result = self._examiner.examine(self._path, self.cursor)
            except IoFailure as e:
                self.listener.examination_failed(self._path, e)
                return

            if isinstance(result, Absent):
                self.listener.no_such_file(self._path)
                return

            if isinstance(result, Rotated):
                self.listener.file_rotated(self._path)
            for line in result.lines:
                self.listener.line_added(self._path, line)

            if not result.more:
                self.listener.completely_read(self._path)
                return
            if self._stop_requested.is_set():
                return
