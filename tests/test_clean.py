from pathlib import Path

from conftest import write
from themepipe.tasks import steps


def test_clean_removes_generated_files(ctx, theme: Path):
    dist = theme / "assets" / "dist"
    write(dist / "css" / "style.css", "x")
    write(theme / "style.css.map", "{}")
    write(theme / "style.css", "kept")
    write(theme / "assets" / "src" / ".DS_Store", "")
    write(theme / "templates" / "Thumbs.db", "")

    report = steps.clean(ctx)

    assert not dist.exists()
    assert not (theme / "style.css.map").exists()
    assert not (theme / "assets" / "src" / ".DS_Store").exists()
    assert not (theme / "templates" / "Thumbs.db").exists()
    assert (theme / "style.css").exists()
    assert (theme / "assets" / "src" / "scss" / "style.scss").exists()
    assert dist in report.deleted
    assert dist / "css" / "style.css" in report.deleted


def test_clean_is_idempotent(ctx, theme: Path):
    write(theme / "assets" / "dist" / "js" / "a.js", "x")
    steps.clean(ctx)

    report = steps.clean(ctx)

    assert report.ok
    assert report.deleted == []
