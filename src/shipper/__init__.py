"""File tailing and line forwarding.

This package follows a file through deletion, recreation and rotation and
reports every added line, using native change notification where the file
system supports it and polling elsewhere.

Key Components:
    - ancestors: nearest existing directory above a path
    - examiner: incremental line reading with rotation detection
    - notify: directory change notification on top of watchdog
    - engine: the monitoring loop for one file
    - forwarder: skip policy, status messages, delivery to a sink

Example:
    >>> from shipper import FileModificationListener, WatchEngine, WatchTarget
    >>> class Printer(FileModificationListener):
    ...     def line_added(self, path, line):
    ...         print(line)
    >>> engine = WatchEngine(WatchTarget("/var/log/app.log"), Printer())
    >>> engine.run()  # doctest: +SKIP
"""

from __future__ import annotations

__version__ = "0.1.0"

from .ancestors import resolve_watch_root
from .config import ShipperConfig, load_config
from .engine import WatchEngine
from .errors import (
    ConfigurationError,
    IoFailure,
    NoRootReachable,
    NotificationUnsupported,
    NotWatchable,
    ShipperError,
)
from .examiner import Absent, Appended, FileExaminer, ReadCursor, Rotated
from .forwarder import FileShipperThread, ForwardingListener
from .listener import FileModificationListener
from .models import MessageCategory, SkipState, WatchTarget
from .sink import LoggerSink, MessageSink

__all__ = [
    "Absent",
    "Appended",
    "ConfigurationError",
    "FileExaminer",
    "FileModificationListener",
    "FileShipperThread",
    "ForwardingListener",
    "IoFailure",
    "LoggerSink",
    "MessageCategory",
    "MessageSink",
    "NoRootReachable",
    "NotWatchable",
    "NotificationUnsupported",
    "ReadCursor",
    "Rotated",
    "ShipperConfig",
    "ShipperError",
    "SkipState",
    "WatchEngine",
    "WatchTarget",
    "load_config",
    "resolve_watch_root",
]
