import threading
import time
from pathlib import Path

from watchfiles import Change

from themepipe.core.config import PathOptions
from themepipe.tasks import registry
from themepipe.tasks.graph import TaskError
from themepipe.tasks.watch import GlobFilter, SingleFlight, Watcher, registrations


def _wait_until(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "timed out"
        time.sleep(0.01)


def test_single_flight_coalesces_overlapping_triggers():
    release = threading.Event()
    runs: list[int] = []

    def _fn() -> None:
        runs.append(len(runs))
        if len(runs) == 1:
            release.wait(timeout=5)

    flight = SingleFlight("style", _fn)
    first = threading.Thread(target=flight.trigger)
    first.start()
    _wait_until(lambda: flight.running)

    assert flight.trigger() is False
    assert flight.trigger() is False

    release.set()
    first.join(timeout=5)

    assert runs == [0, 1]
    assert not flight.running


def test_single_flight_runs_again_after_finishing():
    runs: list[int] = []
    flight = SingleFlight("scripts", lambda: runs.append(1))

    assert flight.trigger() is True
    assert flight.trigger() is True
    assert len(runs) == 2


def test_glob_filter_matches_registration_patterns():
    watch_filter = GlobFilter(("/theme/assets/src/scss/**/*.scss",))

    assert watch_filter(Change.modified, "/theme/assets/src/scss/parts/_a.scss")
    assert not watch_filter(Change.modified, "/theme/assets/src/scss/a.css")
    assert not watch_filter(Change.added, "/theme/assets/src/js/a.js")


def test_registrations_cover_styles_scripts_and_images(tmp_path: Path):
    regs = registrations(PathOptions().resolve(tmp_path / "child"))

    assert [reg.task for reg in regs] == [registry.style, registry.scripts, registry.image_minify]
    assert str(tmp_path / "modul-r" / "assets" / "src" / "scss" / "**" / "*.scss") in regs[0].patterns


def test_failed_run_keeps_watching(tmp_path: Path):
    calls: list[str] = []

    def _run_task(node) -> None:
        calls.append(node.name)
        raise TaskError(node.name, ValueError("bad input"))

    watcher = Watcher(registrations(PathOptions().resolve(tmp_path)), _run_task)

    assert watcher.flight("style").trigger() is True
    assert calls == ["style"]


def test_missing_directories_end_their_watch_thread(tmp_path: Path):
    watcher = Watcher(registrations(PathOptions().resolve(tmp_path / "empty")), lambda node: None)

    watcher.start()
    watcher.stop()

    assert all(not thread.is_alive() for thread in watcher._threads)


def test_dispatch_coalesces_changes_while_a_run_is_in_progress(tmp_path: Path):
    release = threading.Event()
    runs: list[str] = []

    def _run_task(node) -> None:
        runs.append(node.name)
        if len(runs) == 1:
            release.wait(timeout=5)

    watcher = Watcher(registrations(PathOptions().resolve(tmp_path)), _run_task)
    first = watcher.dispatch("style")
    _wait_until(lambda: watcher.flight("style").running)

    watcher.dispatch("style").join(timeout=5)
    watcher.dispatch("style").join(timeout=5)

    assert runs == ["style"]
    release.set()
    first.join(timeout=5)

    assert runs == ["style", "style"]
    assert not watcher.flight("style").running
