from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="THEMEPIPE_", case_sensitive=False)

    root: Path = Field(default_factory=Path.cwd)
    manifest: Path = Path("package.json")
    options_file: Path = Path("themepipe.yaml")
    log_level: str = "INFO"
    max_workers: int = Field(default=8, ge=1)
    watch_debounce_ms: int = Field(default=200, ge=0)

    def manifest_path(self) -> Path:
        return self.manifest if self.manifest.is_absolute() else self.root / self.manifest

    def options_path(self) -> Path:
        if self.options_file.is_absolute():
            return self.options_file
        return self.root / self.options_file
