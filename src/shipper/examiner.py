"""Incremental line reading with rotation detection.

This module reads the bytes a monitored file gained since the previous pass,
using a byte offset kept in a ``ReadCursor``. A file that became shorter than
the remembered offset, or was replaced by another file, is treated as
rotated and read from the beginning.

A pass reads at most ``max_bytes_per_pass`` bytes of complete lines, plus the
rest of the line crossing that limit. Larger backlogs are consumed over
several passes, flagged by ``more`` on the result.
"""

from __future__ import annotations

import codecs
import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from .errors import IoFailure

logger = logging.getLogger(__name__)

# Bytes of complete lines a single pass delivers before yielding.
DEFAULT_MAX_BYTES_PER_PASS = 1024 * 1024

# Bytes read at once while searching for line terminators.
DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class ReadCursor:
    """Reading position inside the monitored file.

    Attributes:
        last_read_offset: Byte offset the next read pass starts from. Zero
            before the first pass and before re-reading a rotated file.
        file_id: Device and inode of the file read by the previous pass.
        fragment_scanned: Bytes after ``last_read_offset`` already searched
            without finding a line terminator.
    """

    last_read_offset: int = 0
    file_id: tuple[int, int] | None = None
    fragment_scanned: int = 0


@dataclass(frozen=True)
class Absent:
    """The path is missing or does not name a regular file."""


@dataclass(frozen=True)
class Appended:
    """Complete lines found between the previous offset and end of file.

    ``more`` is set when the pass stopped at its byte limit before the end
    of the file.
    """

    lines: list[str] = field(default_factory=list)
    new_offset: int = 0
    more: bool = False


@dataclass(frozen=True)
class Rotated:
    """The file shrank or was replaced, and was read from the start."""

    lines: list[str] = field(default_factory=list)
    new_offset: int = 0
    more: bool = False


ExaminationResult = Absent | Appended | Rotated


class FileExaminer:
    """Reads complete lines appended to a file since the last pass.

    Only complete lines are returned. The cursor stops at the end of the last
    line terminator, so an unterminated trailing fragment is read again,
    together with whatever completes it, once its terminator shows up. The
    fragment itself is searched only once.

    Attributes:
        encoding: Text encoding of the monitored file.
        max_bytes_per_pass: Soft limit on the bytes delivered by one pass.
    """

    def __init__(
        self,
        encoding: str = "utf-8",
        max_bytes_per_pass: int = DEFAULT_MAX_BYTES_PER_PASS,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize the examiner.

        Args:
            encoding: Codec name used to decode lines.
            max_bytes_per_pass: A pass stops after the first line that ends
                at or beyond this many bytes.
            chunk_size: Bytes read at once while searching for terminators.

        Raises:
            LookupError: If the codec is unknown.
            ValueError: If a size is not positive.
        """
        if max_bytes_per_pass <= 0 or chunk_size <= 0:
            raise ValueError("max_bytes_per_pass and chunk_size must be positive")
        self.encoding = codecs.lookup(encoding).name
        self.max_bytes_per_pass = max_bytes_per_pass
        self._terminator = _encoded_newline(self.encoding)
        width = len(self._terminator)
        # Chunks start on code unit boundaries.
        self._chunk_size = max(chunk_size - chunk_size % width, width)

    def examine(self, path: str | Path, cursor: ReadCursor) -> ExaminationResult:
        """Run one read pass over ``path`` starting at ``cursor``.

        The file is opened read-only and closed before returning, so other
        processes may delete or replace it at any time.

        Args:
            path: Monitored file.
            cursor: Position of the previous pass. Updated only when the pass
                succeeds.

        Returns:
            ``Absent``, ``Rotated`` or ``Appended``.

        Raises:
            IoFailure: On I/O errors other than the file being missing.
        """
        file_path = Path(path)
        try:
            if not stat.S_ISREG(os.stat(file_path).st_mode):
                return Absent()
            with open(file_path, "rb") as f:
                info = os.fstat(f.fileno())
                if not stat.S_ISREG(info.st_mode):
                    return Absent()
                length = info.st_size
                file_id = (info.st_dev, info.st_ino)

                replaced = cursor.file_id is not None and cursor.file_id != file_id
                rotated = replaced or length < cursor.last_read_offset
                if rotated:
                    logger.info(
                        f"Rotation detected for {file_path} "
                        f"(offset {cursor.last_read_offset}, size {length}, replaced: {replaced})"
                    )
                    start, scanned = 0, 0
                else:
                    start, scanned = cursor.last_read_offset, cursor.fragment_scanned
                    if start + scanned > length:
                        scanned = 0

                end, scanned_to = self._scan(f, start, start + scanned, length)
                f.seek(start)
                data = f.read(end - start)
        except (FileNotFoundError, NotADirectoryError):
            return Absent()
        except OSError as e:
            raise IoFailure(file_path, e) from e

        consumed = self._complete_length(data)
        if consumed < end - start:
            # File shrank during the pass.
            end = scanned_to = start + consumed
        lines = self._decode_lines(data[:consumed])

        width = len(self._terminator)
        cursor.last_read_offset = end
        cursor.file_id = file_id
        cursor.fragment_scanned = (scanned_to - end) - (scanned_to - end) % width
        more = scanned_to < length and end - start >= self.max_bytes_per_pass

        if lines:
            logger.debug(
                f"Read {len(lines)} new lines from {file_path} "
                f"(offset {start} -> {end}{', more pending' if more else ''})"
            )

        if rotated:
            return Rotated(lines=lines, new_offset=end, more=more)
        return Appended(lines=lines, new_offset=end, more=more)

    def _scan(self, f: BinaryIO, start: int, position: int, length: int) -> tuple[int, int]:
        """Search ``f`` from ``position`` for the end of the last complete line.

        Stops at ``length`` or once the complete lines after ``start`` reach
        ``max_bytes_per_pass``. Only one chunk is held at a time.

        Returns:
            Offset after the last terminator found (``start`` if none), and
            the offset the search reached.
        """
        end = start
        f.seek(position)
        while position < length and end - start < self.max_bytes_per_pass:
            chunk = f.read(min(self._chunk_size, length - position))
            if not chunk:
                break
            consumed = self._complete_length(chunk)
            if consumed:
                end = position + consumed
            position += len(chunk)
        return end, position

    def _complete_length(self, data: bytes) -> int:
        """Length of the prefix of ``data`` made of complete lines."""
        width = len(self._terminator)
        index = data.rfind(self._terminator)
        # Multi-byte terminators must sit on a code unit boundary.
        while index != -1 and index % width:
            index = data.rfind(self._terminator, 0, index + width - 1)
        if index == -1:
            return 0
        return index + width

    def _decode_lines(self, data: bytes) -> list[str]:
        if not data:
            return []
        text = data.decode(self.encoding, errors="replace")
        lines = text.split("\n")
        # Text ends with a terminator, the last element is always empty.
        lines.pop()
        return [line.removesuffix("\r") for line in lines]


def _encoded_newline(encoding: str) -> bytes:
    """Byte sequence of a line feed in ``encoding``, without byte order mark."""
    encoder = codecs.getincrementalencoder(encoding)()
    # Codecs that write a BOM emit it with the first chunk only.
    encoder.encode("")
    encoded = encoder.encode("\n")
    if not encoded:
        raise LookupError(f"Encoding {encoding} cannot represent line breaks")
    return encoded
