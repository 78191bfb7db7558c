"""Build options and theme manifest.

Options hold the static per-task transform settings; the manifest is the
theme's ``package.json``. Both are frozen once loaded. Tasks take their own
deep copy through :meth:`Options.for_task` so no option object is shared
between task variants.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the manifest or the build options cannot be loaded."""


DEFAULT_BANNER = "\r\n".join(
    [
        '@charset "UTF-8"; ',
        "/*!",
        "Theme Name: {{ wp.themeName }} ",
        "Description: {{ wp.description }} ",
        "Version: {{ version }} ",
        "Theme URI: {{ homepage }} ",
        "Author: {{ author.name }} ",
        "Author URI: {{ author.website }} ",
        "Text Domain: {{ wp.textDomain }} ",
        "Template: {{ wp.template }} ",
        "*/",
        "",
    ]
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class PathOptions(_Frozen):
    root_path: str = Field(default="./", min_length=1)
    dev_path: str = Field(default="./assets/src/", min_length=1)
    dist_path: str = Field(default="./assets/dist/", min_length=1)
    parent_theme_path: str = Field(default="../modul-r/", min_length=1)
    languages_dir: str = Field(default="languages", min_length=1)

    def resolve(self, root: Path) -> ProjectPaths:
        def _join(value: str) -> Path:
            return Path(os.path.normpath(root / value))

        project_root = _join(self.root_path)
        return ProjectPaths(
            root=project_root,
            dev=_join(self.dev_path),
            dist=_join(self.dist_path),
            parent_theme=_join(self.parent_theme_path),
            languages=project_root / self.languages_dir,
        )


@dataclass(frozen=True)
class ProjectPaths:
    root: Path
    dev: Path
    dist: Path
    parent_theme: Path
    languages: Path


class SassOptions(_Frozen):
    output_style: Literal["nested", "expanded", "compact", "compressed"]
    precision: int = 5
    include_paths: tuple[str, ...] = ()


class SassVariants(_Frozen):
    dev: SassOptions = SassOptions(output_style="nested")
    build: SassOptions = SassOptions(output_style="compressed")


class PrefixerOptions(_Frozen):
    browsers: tuple[str, ...] = Field(..., min_length=1)
    cascade: bool = False


class PrefixerVariants(_Frozen):
    dev: PrefixerOptions = PrefixerOptions(browsers=("last 1 versions",))
    build: PrefixerOptions = PrefixerOptions(browsers=("> 1%", "last 2 versions"))


class CssVariablesOptions(_Frozen):
    preserve: bool = True
    preserve_injected_variables: bool = True


class MinifyOptions(_Frozen):
    keep_bang_comments: bool = False


class ImageOptions(_Frozen):
    gif_interlaced: bool = True
    jpeg_progressive: bool = True
    png_optimization_level: int = Field(default=5, ge=0, le=7)
    svg_remove_view_box: bool = True
    svg_cleanup_ids: bool = False
    verbose: bool = True


class ScriptOptions(_Frozen):
    user_bundle: str = Field(default="scripts.js", min_length=1)
    vendor_bundle: str = Field(default="vendor-scripts.js", min_length=1)
    user_exclude: tuple[str, ...] = ("masonry.js",)
    babel_presets: tuple[str, ...] = ("es2015",)


class TranslationOptions(_Frozen):
    package_suffix: str = "-theme"
    exclude_dirs: tuple[str, ...] = ("node_modules", "vendor", ".git")


class Options(_Frozen):
    """Static build options, one block per task domain."""

    paths: PathOptions = PathOptions()
    sass: SassVariants = SassVariants()
    autoprefixer: PrefixerVariants = PrefixerVariants()
    cssnano: MinifyOptions = MinifyOptions()
    cssvariables: CssVariablesOptions = CssVariablesOptions()
    uglify: MinifyOptions = MinifyOptions()
    imagemin: ImageOptions = ImageOptions()
    scripts: ScriptOptions = ScriptOptions()
    translation: TranslationOptions = TranslationOptions()
    banner: str = Field(default=DEFAULT_BANNER, min_length=1)

    def for_task(self, task_name: str) -> Options:
        """Return an independent copy of the options for one task."""
        logger.debug(f"Cloning options for task {task_name!r}")
        return self.model_copy(deep=True)


class Author(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    website: str


class WordPressMeta(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    theme_name: str = Field(alias="themeName")
    description: str
    text_domain: str = Field(alias="textDomain", min_length=1)
    template: str


class Manifest(BaseModel):
    """The subset of ``package.json`` consumed by the banner and the catalog."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    version: str
    homepage: str
    author: Author
    wp: WordPressMeta

    def template_context(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def load_manifest(path: Path) -> Manifest:
    """Load and validate the theme manifest.

    Args:
        path: Path to ``package.json``

    Returns:
        Validated manifest

    Raises:
        ConfigError: when the file is missing, is not JSON or lacks fields
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Manifest not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read manifest {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Manifest is not valid JSON: {path}: {e}") from e

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid manifest {path}:\n{e}") from e

    logger.debug(f"Loaded manifest {manifest.name}@{manifest.version}")
    return manifest


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_options(overrides_path: Path | None = None) -> Options:
    """Build the options, merging a YAML overrides file over the defaults.

    Args:
        overrides_path: Optional YAML file; ignored when it does not exist

    Returns:
        Frozen build options
    """
    if overrides_path is None or not overrides_path.exists():
        return Options()

    try:
        overrides = yaml.safe_load(overrides_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Options file is not valid YAML: {overrides_path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read options file {overrides_path}: {e}") from e

    if not isinstance(overrides, dict):
        raise ConfigError(f"Options file must contain a mapping: {overrides_path}")

    merged = _deep_merge(Options().model_dump(), overrides)
    try:
        options = Options.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid options in {overrides_path}:\n{e}") from e

    logger.info(f"Loaded option overrides from {overrides_path}")
    return options
