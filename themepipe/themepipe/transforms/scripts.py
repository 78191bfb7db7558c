"""Script transforms: transpile, minify and concatenate."""

from __future__ import annotations

import logging
from pathlib import Path

import dukpy
import rjsmin

from ..core.config import MinifyOptions
from ..core.models import FileItem
from .sourcemap import Chunk, build_bundle_map

logger = logging.getLogger(__name__)


def transpile(item: FileItem, presets: tuple[str, ...]) -> FileItem:
    """Transpile a script down to ES5 with Babel.

    Raises:
        dukpy.JSRuntimeError: when Babel rejects the source
    """
    logger.debug(f"Transpiling {item.relative}")
    result = dukpy.babel_compile(item.text, presets=list(presets), filename=item.relative)
    return item.with_text(result["code"])


def minify_js(item: FileItem, options: MinifyOptions) -> FileItem:
    return item.with_text(rjsmin.jsmin(item.text, keep_bang_comments=options.keep_bang_comments))


def concat(
    items: list[FileItem],
    filename: str,
    *,
    base: Path,
    originals: dict[Path, str] | None = None,
) -> FileItem:
    """Join items into one file named ``filename`` below ``base``.

    Args:
        items: Files in bundle order
        filename: Name of the bundle
        base: Base directory of the bundle item
        originals: Untransformed source text per path; when given, a
            line-level source map pointing at those sources is attached

    Returns:
        The bundle item
    """
    parts = [item.text.rstrip("\n") for item in items]
    bundle = "\n".join(parts) + "\n"
    source_map = None
    if originals is not None:
        chunks = [
            Chunk(
                source=item.relative,
                content=originals[item.path],
                generated_lines=part.count("\n") + 1,
                original_lines=originals[item.path].count("\n") + 1,
            )
            for item, part in zip(items, parts)
        ]
        source_map = build_bundle_map(filename, chunks)
    return FileItem(
        path=base / filename,
        base=base,
        contents=bundle.encode("utf-8"),
        source_map=source_map,
    )
