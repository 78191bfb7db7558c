"""Main CLI application."""

from __future__ import annotations

import logging

import typer
from typing_extensions import Annotated

from ..core.config import ConfigError
from ..core.settings import Settings
from ..tasks import registry
from ..tasks.context import BuildContext
from ..tasks.graph import Runner, TaskError
from ..tasks.watch import Watcher, registrations
from .parsers import parse_root

logger = logging.getLogger(__name__)


def _runner(settings: Settings) -> Runner:
    """Load the project configuration; exits with status 1 when it is invalid."""
    try:
        ctx = BuildContext.load(settings)
    except ConfigError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc
    return Runner(ctx, max_workers=settings.max_workers)


app = typer.Typer(
    name="themepipe",
    help="Build the theme assets: styles, scripts, images and translations.",
    add_completion=False,
)


@app.command()
def run(
    task: Annotated[
        str,
        typer.Argument(
            help="Task to run (see --list).",
            metavar="TASK",
        ),
    ] = registry.DEFAULT_TASK,
    root: Annotated[
        str,
        typer.Option(
            "--root",
            help="Theme root containing package.json (default: cwd).",
            metavar="DIR",
        ),
    ] = "",
    list_tasks: Annotated[
        bool,
        typer.Option(
            "--list",
            help="List the available tasks and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose logging.",
        ),
    ] = False,
) -> None:
    """Run a build task by name; without one, clean and build everything."""
    settings = Settings()
    root_path = parse_root(root)
    if root_path is not None:
        settings = settings.model_copy(update={"root": root_path})

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="[%(levelname)s] %(message)s",
    )

    if list_tasks:
        for name in registry.task_names():
            typer.echo(name)
        return

    if task == registry.WATCH_TASK:
        runner = _runner(settings)
        watcher = Watcher(
            registrations(runner.ctx.paths),
            runner.run,
            debounce_ms=settings.watch_debounce_ms,
        )
        watcher.start()
        watcher.wait()
        return

    try:
        node = registry.get_task(task)
    except KeyError as exc:
        logger.error(exc.args[0])
        raise typer.Exit(code=1) from exc

    runner = _runner(settings)
    try:
        result = runner.run(node)
    except TaskError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc

    if result.errors:
        logger.warning(f"'{result.task}' finished with {len(result.errors)} notification(s)")
    logger.debug(f"Completed '{result.task}' in {result.elapsed:.2f}s")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
