"""Lossless image optimization per format."""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path

from PIL import Image
from scour import scour

from ..core.config import ImageOptions

logger = logging.getLogger(__name__)

RASTER_FORMATS = {
    ".gif": "GIF",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
}

_SVG_ROOT = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_SVG_ATTR = r'\b{name}\s*=\s*"([^"]*)"'
_VIEW_BOX = re.compile(r'\s+viewBox\s*=\s*"[^"]*"')


def png_compress_level(optimization_level: int) -> int:
    """Map an optipng-style level (0-7) onto a zlib level (0-9)."""
    return max(0, min(9, optimization_level * 2 - 1)) if optimization_level else 0


def _optimize_raster(data: bytes, image_format: str, options: ImageOptions) -> bytes:
    buffer = io.BytesIO()
    with Image.open(io.BytesIO(data)) as image:
        if image_format == "GIF":
            image.save(
                buffer,
                format="GIF",
                save_all=getattr(image, "is_animated", False),
                optimize=True,
                interlace=options.gif_interlaced,
            )
        elif image_format == "JPEG":
            image.save(
                buffer,
                format="JPEG",
                quality="keep",
                subsampling="keep",
                optimize=True,
                progressive=options.jpeg_progressive,
            )
        elif getattr(image, "is_animated", False):
            # Frame timing, blending and disposal do not survive a re-save.
            logger.debug("Keeping animated PNG as is")
            return data
        else:
            image.save(
                buffer,
                format="PNG",
                optimize=options.png_optimization_level > 0,
                compress_level=png_compress_level(options.png_optimization_level),
            )
    return buffer.getvalue()


def _number(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value.strip().removesuffix("px"))
    except ValueError:
        return None


def remove_redundant_view_box(svg: str) -> str:
    """Drop a root ``viewBox`` that only restates the width and height."""
    root = _SVG_ROOT.search(svg)
    if root is None:
        return svg

    tag = root.group(0)
    found = {
        name: re.search(_SVG_ATTR.format(name=name), tag)
        for name in ("width", "height", "viewBox")
    }
    if not all(found.values()):
        return svg

    box = found["viewBox"].group(1).replace(",", " ").split()
    width = _number(found["width"].group(1))
    height = _number(found["height"].group(1))
    if len(box) != 4 or width is None or height is None:
        return svg
    if [_number(v) for v in box] != [0.0, 0.0, width, height]:
        return svg

    return svg[: root.start()] + _VIEW_BOX.sub("", tag, count=1) + svg[root.end() :]


def optimize_svg(svg: str, options: ImageOptions) -> str:
    scour_options = scour.sanitizeOptions()
    scour_options.strip_ids = options.svg_cleanup_ids
    scour_options.shorten_ids = options.svg_cleanup_ids
    scour_options.enable_viewboxing = False
    scour_options.quiet = True
    cleaned = scour.scourString(svg, scour_options)
    if options.svg_remove_view_box:
        cleaned = remove_redundant_view_box(cleaned)
    return cleaned


def optimize_image(path: Path, data: bytes, options: ImageOptions) -> bytes:
    """Optimize one image, keeping the original when optimization does not help.

    Formats without an optimizer are returned unchanged.

    Args:
        path: Source path, used to pick the format
        data: Original file contents
        options: Per-format settings

    Returns:
        Bytes to write at the destination
    """
    suffix = path.suffix.lower()
    if suffix == ".svg":
        optimized = optimize_svg(data.decode("utf-8"), options).encode("utf-8")
    elif suffix in RASTER_FORMATS:
        optimized = _optimize_raster(data, RASTER_FORMATS[suffix], options)
    else:
        return data

    if len(optimized) >= len(data):
        return data

    if options.verbose:
        saved = len(data) - len(optimized)
        logger.info(
            f"imagemin: {path.name} (saved {saved} B - {saved / len(data) * 100:.1f}%)"
        )
    return optimized
