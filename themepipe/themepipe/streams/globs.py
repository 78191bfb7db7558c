"""Glob patterns: expansion, matching and base directories."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

_MAGIC = frozenset("*?[")

# A wildcard at the start of a path segment never matches a leading dot.
_SEGMENT = r"(?!\.)[^/]*"


def has_magic(pattern: str) -> bool:
    return any(char in _MAGIC for char in pattern)


def glob_root(pattern: str | Path) -> Path:
    """Return the directory part of a pattern that precedes its first wildcard.

    A pattern without wildcards names a single file, so its parent is used.
    """
    path = Path(pattern)
    if not has_magic(str(pattern)):
        return path.parent

    anchor: list[str] = []
    for part in path.parts:
        if has_magic(part):
            break
        anchor.append(part)
    return Path(*anchor) if anchor else Path(".")


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a slash-separated glob into a full-match regex.

    ``**/`` matches zero or more directories, ``**`` at the end matches
    anything below, ``*`` and ``?`` never cross a separator. Wildcards skip
    dotfiles and dot directories unless the pattern spells out the dot.
    """
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        char = pattern[i]
        segment_start = i == 0 or pattern[i - 1] == "/"
        if char == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    i += 1
                    out.append(f"(?:{_SEGMENT}/)*")
                else:
                    out.append(f"(?:{_SEGMENT}(?:/{_SEGMENT})*)?")
                continue
            out.append(_SEGMENT if segment_start else "[^/]*")
        elif char == "?":
            out.append(r"(?!\.)[^/]" if segment_start else "[^/]")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end + 1
                continue
        else:
            out.append(re.escape(char))
        i += 1
    return re.compile("".join(out) + r"\Z")


def matches(path: str | Path, pattern: str | Path) -> bool:
    return glob_to_regex(Path(pattern).as_posix()).match(Path(path).as_posix()) is not None


def matches_any(path: str | Path, patterns: tuple[str, ...] | list[str]) -> bool:
    return any(matches(path, pattern) for pattern in patterns)


def expand(pattern: str | Path) -> list[Path]:
    """Expand a glob into the sorted list of existing paths it matches."""
    text = str(pattern)
    if not has_magic(text):
        path = Path(text)
        return [path] if path.exists() else []

    root = glob_root(text)
    if not root.is_dir():
        return []

    rest = Path(text).relative_to(root).as_posix()
    candidates = root.rglob("*") if "**" in rest else root.glob(rest)
    regex = glob_to_regex(Path(text).as_posix())
    return sorted(p for p in candidates if regex.match(p.as_posix()))
