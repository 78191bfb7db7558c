"""Source map helpers (revision 3 format)."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from ..core.models import FileItem

_BASE64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def encode_vlq(value: int) -> str:
    vlq = ((-value) << 1) | 1 if value < 0 else value << 1
    encoded = ""
    while True:
        digit = vlq & 0b11111
        vlq >>= 5
        if vlq:
            digit |= 0b100000
        encoded += _BASE64[digit]
        if not vlq:
            return encoded


@dataclass(frozen=True)
class Chunk:
    """One source file as it appears, transformed, inside a bundle."""

    source: str
    content: str
    generated_lines: int
    original_lines: int


def line_mappings(chunks: list[Chunk]) -> str:
    """Map each generated line to the start of a line of its source.

    Generated line ``k`` of a chunk points at original line ``k`` (clamped to
    the last line of the source).
    """
    groups: list[str] = []
    prev_source = 0
    prev_line = 0
    for index, chunk in enumerate(chunks):
        for k in range(chunk.generated_lines):
            original = min(k, max(chunk.original_lines - 1, 0))
            segment = (
                encode_vlq(0)
                + encode_vlq(index - prev_source)
                + encode_vlq(original - prev_line)
                + encode_vlq(0)
            )
            groups.append(segment)
            prev_source, prev_line = index, original
    return ";".join(groups)


def build_bundle_map(filename: str, chunks: list[Chunk], *, source_root: str = "/") -> dict[str, Any]:
    return {
        "version": 3,
        "file": filename,
        "sources": [chunk.source for chunk in chunks],
        "sourcesContent": [chunk.content for chunk in chunks],
        "names": [],
        "mappings": line_mappings(chunks),
        "sourceRoot": source_root,
    }


def shift_lines(source_map: dict[str, Any], lines: int) -> dict[str, Any]:
    """Return a copy of the map with ``lines`` unmapped lines prepended."""
    shifted = dict(source_map)
    shifted["mappings"] = ";" * lines + source_map.get("mappings", "")
    return shifted


def drop_first_line(source_map: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of the map with the first generated line removed."""
    trimmed = dict(source_map)
    mappings = source_map.get("mappings", "")
    trimmed["mappings"] = mappings.split(";", 1)[1] if ";" in mappings else ""
    return trimmed


def write_maps(items: list[FileItem], *, source_root: str = "/") -> list[FileItem]:
    """Emit ``<name>.map`` next to each item carrying a source map.

    The item gets a trailing ``sourceMappingURL`` comment in the syntax of its
    file type; items without a map pass through unchanged.
    """
    out: list[FileItem] = []
    for item in items:
        if item.source_map is None:
            out.append(item)
            continue

        map_path = item.path.with_name(item.path.name + ".map")
        source_map = dict(item.source_map)
        source_map["file"] = item.path.name
        source_map["sourceRoot"] = source_root

        if item.path.suffix == ".css":
            comment = f"\n/*# sourceMappingURL={map_path.name} */\n"
        else:
            comment = f"\n//# sourceMappingURL={map_path.name}\n"

        out.append(item.with_text(item.text.rstrip("\n") + comment, source_map=None))
        out.append(
            FileItem(
                path=map_path,
                base=item.base,
                contents=json.dumps(source_map).encode("utf-8"),
            )
        )
    return out

