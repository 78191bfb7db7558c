from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.config import Manifest, Options, ProjectPaths, load_manifest, load_options
from ..core.settings import Settings
from ..rendering.engine import render_banner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildContext:
    """Everything a step needs, loaded once per process."""

    options: Options
    manifest: Manifest
    paths: ProjectPaths

    @classmethod
    def load(cls, settings: Settings) -> BuildContext:
        """Load manifest and options; raises ConfigError before any task runs."""
        manifest = load_manifest(settings.manifest_path())
        options = load_options(settings.options_path())
        paths = options.paths.resolve(settings.root)
        logger.debug(f"Project root: {paths.root}")
        return cls(options=options, manifest=manifest, paths=paths)

    def banner(self) -> str:
        return render_banner(self.options.banner, self.manifest)
