import json
import os
from pathlib import Path

from conftest import write
from themepipe.core.models import FileItem
from themepipe.tasks import registry, steps
from themepipe.tasks.graph import Runner
from themepipe.transforms.scripts import transpile
from themepipe.transforms.sourcemap import encode_vlq


def _dist_js(theme: Path) -> Path:
    return theme / "assets" / "dist" / "js"


def test_main_script_copies_sources(ctx, theme: Path):
    report = steps.main_script(ctx)

    assert report.written == [_dist_js(theme) / "theme.js"]
    assert (_dist_js(theme) / "theme.js").read_text() == "console.log('theme');\n"


def test_vendor_script_bundles_in_order(ctx, theme: Path):
    report = steps.vendor_script(ctx)

    bundle = (_dist_js(theme) / "vendor-scripts.js").read_text()
    assert report.written == [_dist_js(theme) / "vendor-scripts.js"]
    assert bundle.index("vendorA") < bundle.index("vendorB")
    assert "\n\n" not in bundle


def test_vendor_script_skips_up_to_date_bundle(ctx, theme: Path):
    steps.vendor_script(ctx)

    second = steps.vendor_script(ctx)

    assert second.written == []
    assert len(second.skipped) == 2

    bundle = _dist_js(theme) / "vendor-scripts.js"
    stamp = bundle.stat().st_mtime + 10
    os.utime(theme / "assets" / "src" / "js" / "vendor" / "b.js", (stamp, stamp))

    third = steps.vendor_script(ctx)

    assert third.written == [bundle]


def test_user_script_bundles_parent_and_local_scripts(ctx, theme: Path):
    report = steps.user_script(ctx)

    assert report.ok
    assert report.written == [_dist_js(theme) / "scripts.js", _dist_js(theme) / "scripts.js.map"]

    bundle = (_dist_js(theme) / "scripts.js").read_text()
    assert "parentMarker" in bundle
    assert "localMarker" in bundle
    assert "masonryMarker" not in bundle
    assert "=>" not in bundle
    assert bundle.index("parentMarker") < bundle.index("localMarker")
    assert bundle.rstrip().endswith("//# sourceMappingURL=scripts.js.map")


def test_user_script_map_points_at_original_sources(ctx, theme: Path):
    steps.user_script(ctx)

    source_map = json.loads((_dist_js(theme) / "scripts.js.map").read_text())

    assert source_map["file"] == "scripts.js"
    assert source_map["sourceRoot"] == "/"
    assert source_map["sources"] == [
        "../modul-r/assets/src/js/user/parent.js",
        "assets/src/js/user/local.js",
    ]
    assert source_map["sourcesContent"][1] == "const localMarker = () => 1;\n"


def test_user_script_syntax_error_is_notified(ctx, theme: Path):
    write(theme / "assets" / "src" / "js" / "user" / "local.js", "const = ;\n")

    report = steps.user_script(ctx)

    assert report.written == []
    assert len(report.errors) == 1
    assert report.errors[0].startswith("Babel Error: Error: ")


def test_encode_vlq():
    assert encode_vlq(0) == "A"
    assert encode_vlq(1) == "C"
    assert encode_vlq(-1) == "D"
    assert encode_vlq(16) == "gB"


def test_transpile_applies_configured_presets(theme: Path):
    item = FileItem(
        path=theme / "arrow.js",
        base=theme,
        contents=b"const double = (n) => n * 2;\n",
    )

    out = transpile(item, ("es2015",))

    assert "=>" not in out.text
    assert "const" not in out.text
    assert "double" in out.text


def test_user_script_with_invalid_encoding_is_notified(ctx, theme: Path):
    (theme / "assets" / "src" / "js" / "user" / "local.js").write_bytes(b"/* caf\xe9 */ var c = 3;\n")

    report = steps.user_script(ctx)

    assert report.written == []
    assert report.errors[0].startswith("Babel Error: Error: ")


def test_vendor_script_with_invalid_encoding_is_notified(ctx, theme: Path):
    (theme / "assets" / "src" / "js" / "vendor" / "c.js").write_bytes(b"/* caf\xe9 */ var c = 3;\n")

    result = Runner(ctx).run(registry.scripts)

    vendor = result.report("vendorScript")
    assert vendor.written == []
    assert vendor.errors[0].startswith("Uglify Error: Error: ")
    assert not (_dist_js(theme) / "vendor-scripts.js").exists()
    assert result.report("userScript").ok
