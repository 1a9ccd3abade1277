"""Exception hierarchy for the shipper package.

``Absent`` is deliberately not an exception: a missing file is an expected
state reported through the listener. Everything here is raised.
"""

from __future__ import annotations


class ShipperError(Exception):
    """Base class for all shipper errors."""


class NotWatchable(ShipperError):
    """No directory above the monitored path can host a watch.

    Fatal for the engine monitoring that path.
    """


class NoRootReachable(NotWatchable):
    """The ancestor walk ran out of parents without finding a directory."""


class NotificationUnsupported(ShipperError):
    """Native change notification is not available; polling must be used."""


class IoFailure(ShipperError):
    """Reading the monitored file failed for a reason other than absence."""

    def __init__(self, path, cause: OSError):
        super().__init__(f"Failed to read {path}: {cause}")
        self.path = path
        self.cause = cause


class ConfigurationError(ShipperError):
    """Invalid configuration value or file."""
