"""Directory change notification on top of watchdog.

The engine only needs to know, for one directory at a time, which direct
children were created, modified or deleted, and whether events were lost.
This module reduces watchdog's event classes to that closed set and hands
them over through a bounded queue, so that the observer thread never runs
engine code.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .errors import NotificationUnsupported, NotWatchable

logger = logging.getLogger(__name__)

# Maximum number of undelivered events per subscription.
DEFAULT_MAX_PENDING_EVENTS = 1024


class NotificationKind(Enum):
    """Kinds of directory events the engine reacts to.

    Attributes:
        CREATE: A direct child appeared (created or moved in).
        MODIFY: A direct child's content changed.
        DELETE: A direct child disappeared (deleted or moved out).
        OVERFLOW: Events were dropped; any child may have changed.
    """

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class DirectoryEvent:
    """A change to a direct child of the watched directory.

    Attributes:
        kind: What happened.
        name: Name of the affected child, ``None`` for ``OVERFLOW``.
    """

    kind: NotificationKind
    name: str | None = None


class _DirectoryEventHandler(FileSystemEventHandler):
    """Translates watchdog events into ``DirectoryEvent`` objects."""

    def __init__(self, subscription: DirectorySubscription):
        super().__init__()
        self._subscription = subscription
        self._directory = os.fsdecode(subscription.directory)

    def on_any_event(self, event: FileSystemEvent) -> None:
        src_path = os.fsdecode(event.src_path)

        if src_path == self._directory:
            if event.event_type in ("deleted", "moved"):
                self._subscription.invalidate()
            return

        if event.event_type == "created":
            self._offer(NotificationKind.CREATE, src_path)
        elif event.event_type == "modified":
            self._offer(NotificationKind.MODIFY, src_path)
        elif event.event_type == "deleted":
            self._offer(NotificationKind.DELETE, src_path)
        elif event.event_type == "moved":
            self._offer(NotificationKind.DELETE, src_path)
            self._offer(NotificationKind.CREATE, os.fsdecode(event.dest_path))
        # opened/closed events are ignored: reading the file produces them.

    def _offer(self, kind: NotificationKind, path: str) -> None:
        parent, name = os.path.split(path)
        if parent != self._directory or not name:
            return
        self._subscription.offer(DirectoryEvent(kind, name))


class DirectorySubscription:
    """Watch on exactly one directory.

    Events are queued by the observer thread and consumed in batches by
    ``take``. The subscription becomes invalid when its directory is
    deleted, moved away or replaced by another directory.

    Attributes:
        directory: Watched directory.
        watch: Observer handle, set while the subscription is scheduled.
    """

    def __init__(self, directory: Path, max_pending: int = DEFAULT_MAX_PENDING_EVENTS):
        self.directory = directory
        self._queue: queue.Queue[DirectoryEvent | None] = queue.Queue(maxsize=max_pending)
        self._overflowed = threading.Event()
        self._invalidated = threading.Event()
        self._identity = _identity(directory)
        self.watch = None

    @property
    def valid(self) -> bool:
        """Whether the watched directory is still the one registered."""
        if self._invalidated.is_set():
            return False
        return _identity(self.directory) == self._identity

    def offer(self, event: DirectoryEvent) -> None:
        """Queue an event. Called from the observer thread."""
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            if not self._overflowed.is_set():
                logger.warning(f"Event queue for {self.directory} is full, events dropped")
            self._overflowed.set()

    def invalidate(self) -> None:
        """Mark the subscription unusable and wake up its consumer."""
        self._invalidated.set()
        self.wakeup()

    def wakeup(self) -> None:
        """Unblock a pending ``take`` without delivering an event."""
        try:
            self._queue.put_nowait(None)
        except queue.Full:
            # A full queue does not block the consumer.
            pass

    def take(self, timeout: float | None = None) -> list[DirectoryEvent]:
        """Wait for the next batch of events.

        Blocks until at least one item is queued or ``timeout`` elapses, then
        drains whatever else is pending without waiting.

        Args:
            timeout: Seconds to wait, ``None`` for no limit.

        Returns:
            Events in delivery order, possibly empty. An ``OVERFLOW`` event
            is appended when events were dropped since the previous batch.
        """
        try:
            items = [self._queue.get(timeout=timeout)]
        except queue.Empty:
            items = []
        while items:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                break

        events = [item for item in items if item is not None]
        if self._overflowed.is_set():
            self._overflowed.clear()
            events.append(DirectoryEvent(NotificationKind.OVERFLOW))
        return events


class DirectoryNotifier:
    """Owns a watchdog observer and hands out directory subscriptions."""

    def __init__(self, observer, max_pending: int = DEFAULT_MAX_PENDING_EVENTS):
        self._observer = observer
        self._max_pending = max_pending

    def register(self, directory: Path) -> DirectorySubscription:
        """Start watching ``directory`` for changes of its direct children.

        Raises:
            NotWatchable: If the directory cannot be watched.
        """
        subscription = DirectorySubscription(directory, self._max_pending)
        handler = _DirectoryEventHandler(subscription)
        try:
            subscription.watch = self._observer.schedule(
                handler, str(directory), recursive=False
            )
        except OSError as e:
            raise NotWatchable(f"Cannot watch {directory}: {e}") from e
        logger.debug(f"Watching {directory}")
        return subscription

    def cancel(self, subscription: DirectorySubscription) -> None:
        """Stop delivering events for ``subscription``."""
        watch = subscription.watch
        subscription.watch = None
        if watch is None:
            return
        try:
            self._observer.unschedule(watch)
        except KeyError:
            # The emitter already went away with its directory.
            pass
        logger.debug(f"Stopped watching {subscription.directory}")

    def close(self) -> None:
        """Stop the observer thread."""
        self._observer.unschedule_all()
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout=5.0)


def open_notifier(
    force_polling: bool = False,
    max_pending: int = DEFAULT_MAX_PENDING_EVENTS,
) -> DirectoryNotifier:
    """Create a notifier backed by the platform's native observer.

    Args:
        force_polling: Refuse native notification even where available.
        max_pending: Queue bound per subscription.

    Raises:
        NotificationUnsupported: If only a polling observer exists on this
            platform, polling is forced, or the observer fails to start.
    """
    if force_polling:
        raise NotificationUnsupported("Native notification disabled by configuration")
    if Observer is PollingObserver:
        raise NotificationUnsupported("No native file system observer on this platform")

    observer = Observer()
    observer.daemon = True
    try:
        observer.start()
    except OSError as e:
        raise NotificationUnsupported(f"File system observer failed to start: {e}") from e
    return DirectoryNotifier(observer, max_pending)


def _identity(directory: Path) -> tuple[int, int] | None:
    try:
        info = os.stat(directory)
    except OSError:
        return None
    return (info.st_dev, info.st_ino)
