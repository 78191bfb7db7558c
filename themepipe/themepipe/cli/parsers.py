"""CLI argument parsers and validators."""

from __future__ import annotations

from pathlib import Path

import typer


def parse_root(value: str) -> Path | None:
    """Parse the --root option into an existing directory."""
    if not value:
        return None
    root = Path(value).expanduser().resolve()
    if not root.is_dir():
        raise typer.BadParameter(f"Not a directory: {value!r}")
    return root
