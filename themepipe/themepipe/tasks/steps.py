"""Leaf build steps.

Every step reads its sources, runs them through an ordered list of
transforms and writes the results. Transform failures are reported through
the notifier and end only the failing step.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import dukpy
import sass

from ..core.config import Options, PrefixerOptions, SassOptions
from ..core.models import FileItem, StepReport
from ..streams.files import dest, newer, newer_than, src
from ..streams.globs import expand
from ..streams.io import atomic_write_bytes
from ..streams.notify import (
    BABEL_ERROR,
    IMAGEMIN_ERROR,
    SASS_ERROR,
    TRANSLATION_ERROR,
    UGLIFY_ERROR,
    notify_error,
)
from ..transforms.images import optimize_image
from ..transforms.pot import build_catalog, render_pot
from ..transforms.scripts import concat, minify_js, transpile
from ..transforms.sourcemap import write_maps
from ..transforms.styles import (
    add_header,
    autoprefix,
    compile_scss,
    minify_css,
    resolve_custom_properties,
    strip_charset,
)
from .context import BuildContext

logger = logging.getLogger(__name__)


# ----------------------------
# Clean
# ----------------------------


def clean(ctx: BuildContext) -> StepReport:
    """Delete generated artifacts and stray OS metadata files."""
    report = StepReport(name="clean")
    root, dist = ctx.paths.root, ctx.paths.dist
    patterns = [
        root / "**" / "Thumbs.db",
        root / "**" / ".DS_Store",
        root / "*.css.map",
        dist / "**",
    ]

    targets: set[Path] = set()
    for pattern in patterns:
        targets.update(expand(pattern))
    if dist.is_dir():
        targets.add(dist)

    # Deepest first, so every path is reported and directories are empty.
    for path in sorted(targets, key=lambda p: (len(p.parts), str(p)), reverse=True):
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning(f"Could not delete {path}: {exc}")
            continue
        report.deleted.append(path)

    report.deleted.sort()
    logger.info(
        "Successfully deleted files and folders:\n"
        + "\n".join(str(path) for path in report.deleted)
    )
    return report


# ----------------------------
# Images
# ----------------------------


def image_minify(ctx: BuildContext) -> StepReport:
    """Optimize images whose destination copy is missing or stale."""
    report = StepReport(name="imageMinify")
    options = ctx.options.for_task("imageMinify").imagemin
    source_dir = ctx.paths.dev / "img"
    target_dir = ctx.paths.dist / "img"

    fresh, skipped = newer(src([source_dir / "**"], base=source_dir), target_dir)
    report.skipped.extend(skipped)

    for item in fresh:
        try:
            data = optimize_image(item.path, item.contents, options)
        except Exception as exc:  # noqa: BLE001
            notify_error(report, IMAGEMIN_ERROR, exc)
            continue
        report.written.extend(dest([item.with_bytes(data)], target_dir))

    logger.info(f"imagemin: Minified {len(report.written)} image(s)")
    return report


# ----------------------------
# Translations
# ----------------------------


def _excluded(item: FileItem, exclude_dirs: tuple[str, ...], dist: Path) -> bool:
    if item.path.is_relative_to(dist):
        return True
    return any(part in exclude_dirs for part in Path(item.relative).parts[:-1])


def create_pot(ctx: BuildContext) -> StepReport:
    """Generate the WordPress translation template for the theme."""
    report = StepReport(name="createPot")
    options = ctx.options.for_task("createPot").translation
    root = ctx.paths.root

    items = [
        item
        for item in src([root / "**" / "*.php"], base=root)
        if not _excluded(item, options.exclude_dirs, ctx.paths.dist)
    ]
    try:
        catalog = build_catalog(items, ctx.manifest, package_suffix=options.package_suffix)
        data = render_pot(catalog)
    except ValueError as exc:
        notify_error(report, TRANSLATION_ERROR, exc)
        return report

    target = ctx.paths.languages / f"{ctx.manifest.name}.pot"
    try:
        atomic_write_bytes(target, data)
    except OSError as exc:
        notify_error(report, TRANSLATION_ERROR, exc)
        return report
    report.written.append(target)
    logger.info(f"Wrote {len(catalog)} message(s) to {target}")
    return report


# ----------------------------
# Scripts
# ----------------------------


def main_script(ctx: BuildContext) -> StepReport:
    """Copy the top-level theme scripts unchanged."""
    report = StepReport(name="mainScript")
    items = src([ctx.paths.dev / "js" / "*.js"])
    report.written.extend(dest(items, ctx.paths.dist / "js"))
    return report


def user_script(ctx: BuildContext) -> StepReport:
    """Transpile, minify and bundle parent-theme and local user scripts."""
    report = StepReport(name="userScript")
    options = ctx.options.for_task("userScript")
    scripts = options.scripts
    parent_dir = ctx.paths.parent_theme / "assets" / "src" / "js" / "user"

    patterns = [
        str(parent_dir / "*.js"),
        *(f"!{parent_dir / name}" for name in scripts.user_exclude),
        str(ctx.paths.dev / "js" / "user" / "*.js"),
    ]
    items = src(patterns, base=ctx.paths.root)
    if not items:
        logger.info("No user scripts to bundle")
        return report

    try:
        originals = {item.path: item.text for item in items}
        items = [minify_js(transpile(item, scripts.babel_presets), options.uglify) for item in items]
    except (dukpy.JSRuntimeError, UnicodeDecodeError) as exc:
        notify_error(report, BABEL_ERROR, exc)
        return report

    bundle = concat(items, scripts.user_bundle, base=ctx.paths.root, originals=originals)
    report.written.extend(dest(write_maps([bundle]), ctx.paths.dist / "js"))
    return report


def vendor_script(ctx: BuildContext) -> StepReport:
    """Minify and bundle vendor scripts unless the bundle is up to date."""
    report = StepReport(name="vendorScript")
    options = ctx.options.for_task("vendorScript")
    source_dir = ctx.paths.dev / "js" / "vendor"
    target_dir = ctx.paths.dist / "js"
    bundle_path = target_dir / options.scripts.vendor_bundle

    items = src([source_dir / "*.js"])
    if not items:
        return report

    fresh = newer_than(items, bundle_path)
    if not fresh:
        report.skipped.extend(item.path for item in items)
        logger.info(f"{bundle_path.name} is up to date")
        return report

    try:
        minified = [minify_js(item, options.uglify) for item in fresh]
    except UnicodeDecodeError as exc:
        notify_error(report, UGLIFY_ERROR, exc)
        return report
    bundle = concat(minified, options.scripts.vendor_bundle, base=source_dir)
    report.written.extend(dest([bundle], target_dir))
    return report


# ----------------------------
# Styles
# ----------------------------


def _compile(
    report: StepReport,
    entry: Path,
    sass_options: SassOptions,
    *,
    map_dir: Path | None = None,
) -> FileItem | None:
    items = src([entry])
    if not items:
        logger.warning(f"Style entry not found: {entry}")
        return None
    try:
        compiled = compile_scss(items[0], sass_options, map_dir=map_dir)
    except sass.CompileError as exc:
        notify_error(report, SASS_ERROR, exc)
        return None
    return strip_charset(compiled)


def _postprocess(
    item: FileItem,
    options: Options,
    prefixer: PrefixerOptions,
    *,
    minify: bool,
) -> FileItem:
    css = resolve_custom_properties(item.text, options.cssvariables)
    css = autoprefix(css, prefixer)
    if minify:
        css = minify_css(css, options.cssnano)
    return item.with_text(css)


def main_css(ctx: BuildContext) -> StepReport:
    """Development stylesheet with banner and source map, for the theme root."""
    report = StepReport(name="mainCSS")
    options = ctx.options.for_task("mainCSS")
    root = ctx.paths.root

    compiled = _compile(report, ctx.paths.dev / "scss" / "style.scss", options.sass.dev, map_dir=root)
    if compiled is None:
        return report

    item = _postprocess(compiled, options, options.autoprefixer.dev, minify=False)
    item = add_header(item, ctx.banner())
    report.written.extend(dest(write_maps([item]), root))
    return report


def build_main_css(ctx: BuildContext) -> StepReport:
    """Production stylesheet: compressed, prefixed, minified, with banner."""
    report = StepReport(name="buildMainCSS")
    options = ctx.options.for_task("buildMainCSS")

    compiled = _compile(report, ctx.paths.dev / "scss" / "style.scss", options.sass.build)
    if compiled is None:
        return report

    item = _postprocess(compiled, options, options.autoprefixer.build, minify=True)
    item = add_header(item, ctx.banner())
    report.written.extend(dest([item], ctx.paths.root))
    report.written.extend(dest([item], ctx.paths.dist / "css"))
    return report


def css_atf(ctx: BuildContext) -> StepReport:
    """Above-the-fold stylesheet."""
    report = StepReport(name="cssAtf")
    options = ctx.options.for_task("cssAtf")

    compiled = _compile(report, ctx.paths.dev / "scss" / "atf.scss", options.sass.dev)
    if compiled is None:
        return report

    item = _postprocess(compiled, options, options.autoprefixer.build, minify=True)
    report.written.extend(dest([item], ctx.paths.dist / "css"))
    return report


def editor_css(ctx: BuildContext) -> StepReport:
    """Block editor stylesheet; skipped when the theme has none."""
    report = StepReport(name="editorCSS")
    entry = ctx.paths.dev / "scss" / "editor-style.scss"
    if not entry.exists():
        logger.info(f"No editor stylesheet at {entry}, skipping")
        return report

    options = ctx.options.for_task("editorCSS")
    compiled = _compile(report, entry, options.sass.build)
    if compiled is None:
        return report

    item = _postprocess(compiled, options, options.autoprefixer.build, minify=True)
    report.written.extend(dest([item], ctx.paths.dist / "css"))
    return report
