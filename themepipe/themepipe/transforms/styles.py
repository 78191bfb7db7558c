"""Stylesheet transforms: compile, resolve custom properties, prefix, minify, header.

The post-processing transforms work on compiled CSS text and insert new
declarations on the line of the declaration they derive from, so line-level
source maps from the compiler stay valid.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import rcssmin
import sass

from ..core.config import CssVariablesOptions, MinifyOptions, PrefixerOptions, SassOptions
from ..core.models import FileItem
from .sourcemap import drop_first_line, shift_lines

logger = logging.getLogger(__name__)

# Declarations only: preceded by "{" or ";" and terminated by ";" or "}".
# Selectors such as "a:hover{" never match because they end in "{".
_DECLARATION = re.compile(
    r"(?P<lead>[{;]\s*)(?P<prop>-?[a-zA-Z][a-zA-Z-]*)\s*:\s*(?P<value>[^;{}]+?)\s*(?=[;}])"
)
_ROOT_BLOCK = re.compile(r":root\s*\{(?P<body>[^}]*)\}")
_CUSTOM_PROPERTY = re.compile(r"(?P<name>--[\w-]+)\s*:\s*(?P<value>[^;}]+)")
_VAR_CALL = re.compile(r"var\(\s*(?P<name>--[\w-]+)\s*(?:,\s*(?P<fallback>[^()]*))?\)")
_CHARSET = re.compile(r'\A(?:\ufeff)?(?:@charset\s+"[^"]*";[ \t]*(?P<newline>\r?\n)?)?')

# property -> (prefixes, oldest support tier still needing them)
PREFIXED_PROPERTIES: dict[str, tuple[tuple[str, ...], str]] = {
    "appearance": (("-webkit-", "-moz-"), "current"),
    "backdrop-filter": (("-webkit-",), "current"),
    "box-decoration-break": (("-webkit-",), "current"),
    "hyphens": (("-webkit-",), "current"),
    "mask-image": (("-webkit-",), "current"),
    "print-color-adjust": (("-webkit-",), "current"),
    "text-size-adjust": (("-webkit-", "-moz-"), "current"),
    "user-select": (("-webkit-", "-moz-"), "current"),
    "clip-path": (("-webkit-",), "legacy"),
    "column-count": (("-webkit-", "-moz-"), "legacy"),
    "column-gap": (("-webkit-", "-moz-"), "legacy"),
    "text-decoration-skip-ink": (("-webkit-",), "legacy"),
    "text-emphasis": (("-webkit-",), "legacy"),
}


def compile_scss(item: FileItem, options: SassOptions, *, map_dir: Path | None = None) -> FileItem:
    """Compile a SCSS entry file.

    Args:
        item: Entry file item
        options: Compiler options (output style, include paths)
        map_dir: Directory the compiled file and its map will be written to;
            when given, a source map is attached to the result

    Returns:
        Item renamed to ``.css`` with the compiled text

    Raises:
        sass.CompileError: on syntax or import errors
    """
    logger.debug(f"Compiling {item.path.name} ({options.output_style})")
    output_path = item.path.with_suffix(".css")
    kwargs = {
        "filename": str(item.path),
        "output_style": options.output_style,
        "precision": options.precision,
        "include_paths": [str(item.path.parent), *options.include_paths],
    }
    if map_dir is None:
        css = sass.compile(**kwargs)
        return item.with_text(css, path=output_path, source_map=None)

    css, map_json = sass.compile(
        **kwargs,
        source_map_filename=str(map_dir / f"{output_path.name}.map"),
        output_filename_hint=str(map_dir / output_path.name),
        source_map_contents=True,
        omit_source_map_url=True,
    )
    return item.with_text(css, path=output_path, source_map=json.loads(map_json))


def strip_charset(item: FileItem) -> FileItem:
    """Remove a leading BOM or ``@charset`` rule emitted by the compiler."""
    text = item.text
    match = _CHARSET.match(text)
    if not match or not match.group(0):
        return item

    source_map = item.source_map
    if source_map is not None and match.group("newline"):
        source_map = drop_first_line(source_map)
    return item.with_text(text[match.end() :], source_map=source_map)


def _custom_properties(css: str) -> dict[str, str]:
    found: dict[str, str] = {}
    for block in _ROOT_BLOCK.finditer(css):
        for prop in _CUSTOM_PROPERTY.finditer(block.group("body")):
            found[prop.group("name")] = prop.group("value").strip()
    return found


def _resolve(value: str, variables: dict[str, str], depth: int = 0) -> str | None:
    if depth > 10:
        return None
    unresolved = False

    def _substitute(match: re.Match[str]) -> str:
        nonlocal unresolved
        name = match.group("name")
        if name in variables:
            resolved = _resolve(variables[name], variables, depth + 1)
            if resolved is not None:
                return resolved
        fallback = match.group("fallback")
        if fallback is not None:
            return fallback.strip()
        unresolved = True
        return match.group(0)

    result = _VAR_CALL.sub(_substitute, value)
    if unresolved:
        return None
    if "var(" in result:
        return _resolve(result, variables, depth + 1)
    return result


def resolve_custom_properties(css: str, options: CssVariablesOptions) -> str:
    """Compute static fallbacks for ``var()`` references to ``:root`` properties.

    With ``preserve`` the resolved declaration is inserted before the original
    one, otherwise it replaces it. References that cannot be resolved are
    left untouched.
    """
    variables = _custom_properties(css)
    if not variables:
        return css

    def _replace(match: re.Match[str]) -> str:
        prop, value = match.group("prop"), match.group("value")
        if prop.startswith("--") or "var(" not in value:
            return match.group(0)
        resolved = _resolve(value, variables)
        if resolved is None:
            return match.group(0)
        lead = match.group("lead")
        if not options.preserve:
            return f"{lead}{prop}: {resolved}"
        separator = "; " if lead.strip() != lead else ";"
        return f"{lead}{prop}: {resolved}{separator}{match.group(0)[len(lead):]}"

    return _DECLARATION.sub(_replace, css)


def prefix_tiers(browsers: tuple[str, ...]) -> set[str]:
    """Map browser-support queries to the prefix tiers they require.

    ``last 1 versions`` only needs prefixes current browsers still ship;
    wider queries (``last N versions`` with N > 1, ``> x%``, ``defaults``)
    also need the legacy ones.
    """
    tiers = {"current"}
    for query in browsers:
        normalized = query.strip().lower()
        last = re.fullmatch(r"last (\d+) versions?", normalized)
        if last and int(last.group(1)) <= 1:
            continue
        tiers.add("legacy")
    return tiers


def autoprefix(css: str, options: PrefixerOptions) -> str:
    """Insert vendor-prefixed copies of declarations for the target browsers."""
    tiers = prefix_tiers(options.browsers)

    def _replace(match: re.Match[str]) -> str:
        prop = match.group("prop").lower()
        entry = PREFIXED_PROPERTIES.get(prop)
        if entry is None or entry[1] not in tiers:
            return match.group(0)
        lead, value = match.group("lead"), match.group("value")
        separator = "; " if lead.strip() != lead else ";"
        prefixed = separator.join(f"{prefix}{prop}: {value}" for prefix in entry[0])
        return f"{lead}{prefixed}{separator}{match.group(0)[len(lead):]}"

    return _DECLARATION.sub(_replace, css)


def minify_css(css: str, options: MinifyOptions) -> str:
    return rcssmin.cssmin(css, keep_bang_comments=options.keep_bang_comments)


def add_header(item: FileItem, header: str) -> FileItem:
    """Prepend ``header``, shifting the source map by the header's lines."""
    source_map = item.source_map
    if source_map is not None:
        source_map = shift_lines(source_map, header.count("\n"))
    return item.with_text(header + item.text, source_map=source_map)

