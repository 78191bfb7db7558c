import stat
from pathlib import Path

from themepipe.streams.io import atomic_write_bytes


def test_atomic_write_creates_parents_and_replaces(tmp_path: Path):
    target = tmp_path / "dist" / "css" / "style.css"

    atomic_write_bytes(target, b"first")
    atomic_write_bytes(target, b"second", mode=0o600)

    assert target.read_bytes() == b"second"
    assert stat.S_IMODE(target.stat().st_mode) == 0o600
    assert [p.name for p in target.parent.iterdir()] == ["style.css"]
