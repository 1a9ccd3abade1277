"""Location of the nearest existing directory above a monitored path."""

from __future__ import annotations

from pathlib import Path

from .errors import NoRootReachable


def resolve_watch_root(path: str | Path) -> Path:
    """Return the closest existing ancestor directory of ``path``.

    The walk starts at the parent of ``path`` and climbs towards the root.
    The path itself need not exist. Nothing is cached: the hierarchy may
    change between calls.

    Args:
        path: Path to a file, existing or not.

    Returns:
        Most specific ancestor that currently exists as a directory.

    Raises:
        NoRootReachable: If no ancestor exists, e.g. the path lies outside
            every root of a multi-root filesystem.
    """
    current = Path(path).absolute()
    while True:
        parent = current.parent
        if parent == current:
            raise NoRootReachable(f"No existing ancestor directory for {path}")
        if parent.is_dir():
            return parent
        current = parent


def next_segment(root: Path, path: Path) -> str | None:
    """Name of the child of ``root`` that lies on the way to ``path``'s parent.

    Returns ``None`` when ``root`` already is the parent of ``path``.
    """
    relative = path.parent.relative_to(root)
    if not relative.parts:
        return None
    return relative.parts[0]
