"""Runtime models shared by transforms, steps and the task runner."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class FileItem:
    """A file travelling through a step pipeline."""

    path: Path
    base: Path
    contents: bytes
    source_map: dict[str, Any] | None = None

    @property
    def relative(self) -> str:
        return Path(os.path.relpath(self.path, self.base)).as_posix()

    @property
    def text(self) -> str:
        return self.contents.decode("utf-8")

    def with_text(self, text: str, **changes: Any) -> FileItem:
        return replace(self, contents=text.encode("utf-8"), **changes)

    def with_bytes(self, data: bytes, **changes: Any) -> FileItem:
        return replace(self, contents=data, **changes)


@dataclass
class StepReport:
    """Outcome of one leaf step."""

    name: str
    written: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    deleted: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class RunResult:
    task: str
    reports: list[StepReport]
    elapsed: float

    @property
    def errors(self) -> list[str]:
        return [error for report in self.reports for error in report.errors]

    def report(self, name: str) -> StepReport:
        for report in self.reports:
            if report.name == name:
                return report
        raise KeyError(name)
