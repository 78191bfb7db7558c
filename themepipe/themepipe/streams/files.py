"""Reading sources, writing destinations and incremental filters."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from ..core.models import FileItem
from .globs import expand, glob_root, matches_any
from .io import atomic_write_bytes

logger = logging.getLogger(__name__)


def src(patterns: Iterable[str | Path], *, base: Path | None = None) -> list[FileItem]:
    """Read every file matched by the patterns.

    Patterns prefixed with ``!`` exclude matches of the others. Files are
    returned in pattern order, sorted within each pattern, without duplicates.

    Args:
        patterns: Glob patterns (absolute, or relative to the cwd)
        base: Directory relative names are computed from; defaults to the
            non-wildcard prefix of each pattern

    Returns:
        File items with their contents loaded
    """
    positives: list[str] = []
    negatives: list[str] = []
    for pattern in patterns:
        text = str(pattern)
        if text.startswith("!"):
            negatives.append(Path(text[1:]).as_posix())
        else:
            positives.append(text)

    items: list[FileItem] = []
    seen: set[Path] = set()
    for pattern in positives:
        pattern_base = base if base is not None else glob_root(pattern)
        for path in expand(pattern):
            if not path.is_file() or path in seen:
                continue
            if negatives and matches_any(path, negatives):
                logger.debug(f"Excluded {path}")
                continue
            seen.add(path)
            items.append(FileItem(path=path, base=pattern_base, contents=path.read_bytes()))

    logger.debug(f"Matched {len(items)} file(s)")
    return items


def dest(items: Iterable[FileItem], directory: Path, *, mode: int = 0o644) -> list[Path]:
    """Write items below ``directory`` keeping their relative names.

    Args:
        items: Items to write
        directory: Destination directory
        mode: File permissions

    Returns:
        Written paths
    """
    written: list[Path] = []
    for item in items:
        target = directory / item.relative
        atomic_write_bytes(target, item.contents, mode=mode)
        logger.debug(f"Wrote {target}")
        written.append(target)
    return written


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return None


def newer(items: Iterable[FileItem], directory: Path) -> tuple[list[FileItem], list[Path]]:
    """Keep items whose counterpart below ``directory`` is missing or older.

    Returns:
        The items to process and the source paths skipped as up to date
    """
    fresh: list[FileItem] = []
    skipped: list[Path] = []
    for item in items:
        target_mtime = _mtime(directory / item.relative)
        if target_mtime is None or item.path.stat().st_mtime > target_mtime:
            fresh.append(item)
        else:
            skipped.append(item.path)
    return fresh, skipped


def newer_than(items: list[FileItem], target: Path) -> list[FileItem]:
    """Pass all items through when any is newer than the single ``target``.

    Returns:
        ``items`` unchanged, or an empty list when ``target`` is up to date
    """
    target_mtime = _mtime(target)
    if target_mtime is None:
        return items
    if any(item.path.stat().st_mtime > target_mtime for item in items):
        return items
    return []
