"""Translation template (.pot) generation from WordPress PHP templates."""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from typing import Iterator

from babel.messages.catalog import Catalog
from babel.messages.pofile import write_po

from ..core.config import Manifest
from ..core.models import FileItem

logger = logging.getLogger(__name__)


class ExtractionError(ValueError):
    """Raised when a gettext call cannot be parsed."""


# Argument roles per WordPress gettext function; None marks a non-string
# argument (the count of _n / _nx).
KEYWORDS: dict[str, tuple[str | None, ...]] = {
    "__": ("msgid", "domain"),
    "_e": ("msgid", "domain"),
    "esc_html__": ("msgid", "domain"),
    "esc_html_e": ("msgid", "domain"),
    "esc_attr__": ("msgid", "domain"),
    "esc_attr_e": ("msgid", "domain"),
    "_x": ("msgid", "context", "domain"),
    "_ex": ("msgid", "context", "domain"),
    "esc_html_x": ("msgid", "context", "domain"),
    "esc_attr_x": ("msgid", "context", "domain"),
    "_n": ("msgid", "plural", None, "domain"),
    "_nx": ("msgid", "plural", None, "context", "domain"),
    "_n_noop": ("msgid", "plural", "domain"),
    "_nx_noop": ("msgid", "plural", "context", "domain"),
}

_CALL = re.compile(
    r"(?<![\w$>:])(?P<name>" + "|".join(sorted(map(re.escape, KEYWORDS), key=len, reverse=True)) + r")\s*\("
)
_TRANSLATORS = re.compile(
    r"/\*\s*translators:\s*(?P<block>.*?)\s*\*/|//\s*translators:\s*(?P<line>[^\n]*)",
    re.IGNORECASE | re.DOTALL,
)
_DOUBLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "$": "$"}


@dataclass
class ExtractedMessage:
    msgid: str
    lineno: int
    plural: str | None = None
    context: str | None = None
    domain: str | None = None
    comments: list[str] = field(default_factory=list)


def _split_arguments(source: str, start: int) -> tuple[list[str], int]:
    """Split the top-level arguments of the call whose ``(`` precedes ``start``."""
    args: list[str] = []
    depth = 0
    current: list[str] = []
    i = start
    while i < len(source):
        char = source[i]
        if char in "'\"":
            end = i + 1
            while end < len(source) and source[end] != char:
                end += 2 if source[end] == "\\" else 1
            if end >= len(source):
                raise ExtractionError("unterminated string literal")
            current.append(source[i : end + 1])
            i = end + 1
            continue
        if char in "([{":
            depth += 1
        elif char in ")]}":
            if depth == 0:
                args.append("".join(current).strip())
                return args, i + 1
            depth -= 1
        elif char == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
            i += 1
            continue
        current.append(char)
        i += 1
    raise ExtractionError("unterminated function call")


def _literal(arg: str) -> str | None:
    """Return the value of a single PHP string literal, else None."""
    if len(arg) < 2 or arg[0] not in "'\"" or arg[-1] != arg[0]:
        return None
    body = arg[1:-1]
    quote = arg[0]
    out: list[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == quote:
            return None  # concatenation such as 'a' . 'b'
        if char == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            if quote == "'" and nxt in "'\\":
                out.append(nxt)
                i += 2
                continue
            if quote == '"' and nxt in _DOUBLE_ESCAPES:
                out.append(_DOUBLE_ESCAPES[nxt])
                i += 2
                continue
        out.append(char)
        i += 1
    return "".join(out)


def _translator_comment(source: str, offset: int) -> str | None:
    """Find a ``translators:`` comment ending on the line before ``offset``."""
    line_start = source.rfind("\n", 0, offset) + 1
    previous_start = source.rfind("\n", 0, max(line_start - 1, 0)) + 1
    window = source[previous_start:offset]
    matches = list(_TRANSLATORS.finditer(window))
    if not matches:
        return None
    last = matches[-1]
    return " ".join((last.group("block") or last.group("line") or "").split())


def extract_php(source: str) -> Iterator[ExtractedMessage]:
    """Yield every gettext call with literal arguments found in PHP source.

    Raises:
        ExtractionError: on an unterminated call or string literal
    """
    for match in _CALL.finditer(source):
        roles = KEYWORDS[match.group("name")]
        lineno = source.count("\n", 0, match.start()) + 1
        try:
            args, _ = _split_arguments(source, match.end())
        except ExtractionError as e:
            raise ExtractionError(f"line {lineno}: {e}") from e

        values: dict[str, str | None] = {}
        for role, arg in zip(roles, args):
            if role is not None:
                values[role] = _literal(arg)

        msgid = values.get("msgid")
        if not msgid:
            logger.debug(f"Skipping non-literal {match.group('name')}() on line {lineno}")
            continue
        if "plural" in roles and not values.get("plural"):
            continue

        comment = _translator_comment(source, match.start())
        yield ExtractedMessage(
            msgid=msgid,
            lineno=lineno,
            plural=values.get("plural"),
            context=values.get("context"),
            domain=values.get("domain"),
            comments=[comment] if comment else [],
        )


def build_catalog(items: list[FileItem], manifest: Manifest, *, package_suffix: str = "-theme") -> Catalog:
    """Collect the messages of the manifest's text domain into a catalog.

    Messages with the same id and context are merged; their locations
    accumulate.
    """
    domain = manifest.wp.text_domain
    catalog = Catalog(
        domain=domain,
        project=f"{manifest.name}{package_suffix}",
        version=manifest.version,
        copyright_holder=manifest.author.name,
        msgid_bugs_address=manifest.homepage,
        charset="utf-8",
    )
    for item in items:
        for message in extract_php(item.text):
            if message.domain != domain:
                continue
            msgid: str | tuple[str, str] = message.msgid
            if message.plural is not None:
                msgid = (message.msgid, message.plural)
            catalog.add(
                msgid,
                locations=[(item.relative, message.lineno)],
                auto_comments=message.comments,
                context=message.context,
            )
    logger.debug(f"Collected {len(catalog)} message(s) for domain {domain!r}")
    return catalog


def render_pot(catalog: Catalog) -> bytes:
    buffer = io.BytesIO()
    write_po(buffer, catalog, width=76)
    return buffer.getvalue()
