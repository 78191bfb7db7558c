"""Task graph: leaf steps composed in parallel and in series.

``Parallel`` starts every child at once and completes when all of them have
completed. ``Series`` starts a child only after its predecessor returned.
Each parallel group gets its own thread pool, so nested groups never wait on
a worker they occupy themselves.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Protocol, TypeAlias

from ..core.models import RunResult, StepReport
from .context import BuildContext

logger = logging.getLogger(__name__)


class TaskError(RuntimeError):
    """Raised when a step fails with an error it does not handle itself."""

    def __init__(self, task_name: str, cause: BaseException) -> None:
        super().__init__(f"Task '{task_name}' failed: {cause}")
        self.task_name = task_name
        self.cause = cause


@dataclass(frozen=True)
class Step:
    name: str
    fn: Callable[[BuildContext], StepReport]
    description: str = ""


@dataclass(frozen=True)
class Parallel:
    name: str
    children: tuple[Node, ...]
    description: str = ""


@dataclass(frozen=True)
class Series:
    name: str
    children: tuple[Node, ...]
    description: str = ""


Node: TypeAlias = Step | Parallel | Series


class RunListener(Protocol):
    def on_start(self, node: Node) -> None:
        ...

    def on_finish(self, node: Node) -> None:
        ...


def _format_elapsed(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    return f"{seconds:.2f} s"


def iter_steps(node: Node) -> list[Step]:
    """Flatten a node into its leaf steps, in declaration order."""
    if isinstance(node, Step):
        return [node]
    steps: list[Step] = []
    for child in node.children:
        steps.extend(iter_steps(child))
    return steps


class Runner:
    """Executes task nodes against a build context."""

    def __init__(
        self,
        ctx: BuildContext,
        *,
        max_workers: int = 8,
        listener: RunListener | None = None,
    ) -> None:
        self.ctx = ctx
        self.max_workers = max_workers
        self.listener = listener

    def run(self, node: Node) -> RunResult:
        logger.debug(f"'{node.name}' runs {len(iter_steps(node))} step(s)")
        started = time.perf_counter()
        reports = self._execute(node)
        return RunResult(task=node.name, reports=reports, elapsed=time.perf_counter() - started)

    def _execute(self, node: Node) -> list[StepReport]:
        logger.info(f"Starting '{node.name}'...")
        if self.listener is not None:
            self.listener.on_start(node)
        started = time.perf_counter()

        if isinstance(node, Step):
            reports = [self._run_step(node)]
        elif isinstance(node, Series):
            reports = []
            for child in node.children:
                reports.extend(self._execute(child))
        else:
            reports = self._run_parallel(node)

        if self.listener is not None:
            self.listener.on_finish(node)
        logger.info(f"Finished '{node.name}' after {_format_elapsed(time.perf_counter() - started)}")
        return reports

    def _run_step(self, step: Step) -> StepReport:
        try:
            return step.fn(self.ctx)
        except TaskError:
            raise
        except Exception as exc:
            logger.error(f"'{step.name}' errored: {exc}")
            raise TaskError(step.name, exc) from exc

    def _run_parallel(self, node: Parallel) -> list[StepReport]:
        if not node.children:
            return []

        workers = min(len(node.children), self.max_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=node.name) as pool:
            futures = [pool.submit(self._execute, child) for child in node.children]

        reports: list[StepReport] = []
        first_error: BaseException | None = None
        for future in futures:
            try:
                reports.extend(future.result())
            except Exception as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
        return reports
