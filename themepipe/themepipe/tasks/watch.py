"""Re-run tasks when their source files change.

Each registration watches its own glob patterns on a dedicated thread and
hands every batch of changes to a run thread, so it keeps receiving events
while its task builds. Runs are single-flight per task name: a change arriving
while the task is running queues exactly one follow-up run, and any further
changes coalesce into it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from watchfiles import Change, DefaultFilter, watch

from ..core.config import ProjectPaths
from ..streams.globs import glob_root, matches_any
from . import registry
from .graph import Node, TaskError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchRegistration:
    patterns: tuple[str, ...]
    task: Node


def registrations(paths: ProjectPaths) -> list[WatchRegistration]:
    parent_scss = paths.parent_theme / "assets" / "src" / "scss"
    return [
        WatchRegistration(
            patterns=(
                str(paths.dev / "scss" / "**" / "*.scss"),
                str(parent_scss / "**" / "*.scss"),
            ),
            task=registry.style,
        ),
        WatchRegistration(
            patterns=(str(paths.dev / "js" / "**" / "*.js"),),
            task=registry.scripts,
        ),
        WatchRegistration(
            patterns=(str(paths.dev / "img" / "**" / "*"),),
            task=registry.image_minify,
        ),
    ]


class GlobFilter(DefaultFilter):
    """watchfiles filter accepting only paths matched by the given globs."""

    def __init__(self, patterns: tuple[str, ...]) -> None:
        super().__init__()
        self.patterns = patterns

    def __call__(self, change: Change, path: str) -> bool:
        return super().__call__(change, path) and matches_any(path, self.patterns)


class SingleFlight:
    """Run a callable at most once at a time, coalescing overlapping triggers."""

    def __init__(self, name: str, fn: Callable[[], object]) -> None:
        self.name = name
        self._fn = fn
        self._lock = threading.Lock()
        self._running = False
        self._pending = False

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def trigger(self) -> bool:
        """Run now on the calling thread, or queue a follow-up if already running.

        Returns:
            True when this call performed the run(s), False when it only queued
        """
        with self._lock:
            if self._running:
                self._pending = True
                logger.debug(f"'{self.name}' is running; queued a follow-up run")
                return False
            self._running = True

        try:
            while True:
                self._fn()
                with self._lock:
                    if not self._pending:
                        return True
                    self._pending = False
        finally:
            with self._lock:
                self._running = False
                self._pending = False


class Watcher:
    """Watches every registration until stopped."""

    def __init__(
        self,
        registrations: list[WatchRegistration],
        run_task: Callable[[Node], object],
        *,
        debounce_ms: int = 200,
    ) -> None:
        self.registrations = registrations
        self.debounce_ms = debounce_ms
        self._run_task = run_task
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        self._runs: list[threading.Thread] = []
        self._runs_lock = threading.Lock()
        self._flights = {
            reg.task.name: SingleFlight(reg.task.name, self._runner_for(reg.task))
            for reg in registrations
        }

    def _runner_for(self, task: Node) -> Callable[[], None]:
        def _run() -> None:
            try:
                self._run_task(task)
            except TaskError as exc:
                logger.error(f"'{task.name}' failed, still watching: {exc}")

        return _run

    def flight(self, task_name: str) -> SingleFlight:
        return self._flights[task_name]

    def dispatch(self, task_name: str) -> threading.Thread:
        """Trigger a task run off the calling thread."""
        thread = threading.Thread(
            target=self._flights[task_name].trigger,
            name=f"run-{task_name}",
            daemon=True,
        )
        thread.start()
        with self._runs_lock:
            self._runs = [run for run in self._runs if run.is_alive()]
            self._runs.append(thread)
        return thread

    def start(self) -> None:
        for reg in self.registrations:
            thread = threading.Thread(
                target=self._watch_loop,
                args=(reg,),
                name=f"watch-{reg.task.name}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    def _watch_loop(self, reg: WatchRegistration) -> None:
        roots = sorted({glob_root(pattern) for pattern in reg.patterns if glob_root(pattern).is_dir()})
        if not roots:
            logger.warning(f"Nothing to watch for '{reg.task.name}': {', '.join(reg.patterns)}")
            return

        logger.info(f"Watching {', '.join(map(str, roots))} for '{reg.task.name}'")
        for changes in watch(
            *roots,
            watch_filter=GlobFilter(reg.patterns),
            debounce=self.debounce_ms,
            stop_event=self._stop,
        ):
            changed = sorted(Path(path).name for _, path in changes)
            logger.info(f"Change detected ({', '.join(changed)}), running '{reg.task.name}'")
            self.dispatch(reg.task.name)

    def stop(self) -> None:
        self._stop.set()
        with self._runs_lock:
            runs = list(self._runs)
        for thread in [*self._threads, *runs]:
            thread.join(timeout=5)

    def wait(self) -> None:
        """Block until interrupted, then stop all registrations."""
        try:
            while not self._stop.wait(timeout=0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Stopping watch")
        finally:
            self.stop()
