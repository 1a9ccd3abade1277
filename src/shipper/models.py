"""Data models shared by the watch engine and the forwarding layer."""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import ConfigurationError


@dataclass(frozen=True)
class WatchTarget:
    """A file to monitor and the encoding of its content.

    Attributes:
        path: Monitored file. Need not exist.
        encoding: Codec name used to decode lines.
    """

    path: Path
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ConfigurationError(f"Unknown file encoding: {self.encoding}") from e


class MessageCategory(Enum):
    """Category of the last status message shown to the user.

    Attributes:
        SENDING: Lines are being forwarded.
        NO_SUCH_FILE: The monitored file is missing.
        FILE_ROTATED: The monitored file was rotated.
    """

    SENDING = "sending"
    NO_SUCH_FILE = "no_such_file"
    FILE_ROTATED = "file_rotated"


@dataclass
class SkipState:
    """One-shot suppression of content that existed before monitoring began.

    While ``active``, lines read are not forwarded. The flag is cleared for
    good once the file is found missing (a file created later only holds new
    data) or once a read pass reaches the end of the file.

    Attributes:
        active: Whether lines are currently suppressed.
    """

    active: bool = True

    def clear(self) -> None:
        """Stop suppressing lines, permanently."""
        self.active = False
