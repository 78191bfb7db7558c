"""Banner template rendering."""

from __future__ import annotations

import logging
from functools import lru_cache

from jinja2 import Environment, StrictUndefined, Template

from ..core.config import Manifest

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def load_template(source: str) -> Template:
    """Compile a banner template.

    Line endings are kept as CRLF so the stylesheet header is byte-exact.

    Args:
        source: Template text

    Returns:
        Compiled Jinja2 template
    """
    env = Environment(
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        newline_sequence="\r\n",
    )
    return env.from_string(source)


def render_banner(source: str, manifest: Manifest) -> str:
    """Render the stylesheet banner from the manifest.

    Args:
        source: Banner template text
        manifest: Theme manifest providing the interpolated fields

    Returns:
        Banner text, ending with a line break
    """
    banner = load_template(source).render(**manifest.template_context())
    logger.debug(f"Rendered banner for {manifest.wp.theme_name}")
    return banner
