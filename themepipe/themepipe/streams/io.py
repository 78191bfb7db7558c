"""Atomic writes for step outputs."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write_bytes(path: Path, data: bytes, mode: int = 0o644) -> None:
    """Replace ``path`` with ``data`` in one rename.

    Readers (a browser reloading ``style.css``, an overlapping watch run) see
    either the previous artifact or the new one, never a partial file. The
    temporary file lives in the destination directory so the rename stays on
    one filesystem.

    Args:
        path: Destination file path; missing parent directories are created
        data: Content to write
        mode: File permissions (octal), applied before the file is published
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
            os.fchmod(tmp.fileno(), mode)
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
