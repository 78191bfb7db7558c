"""Named entry points of the build.

Every task below can be invoked by name from the command line; ``default``
runs the full clean-then-build sequence. ``watch`` is long-running and is
handled by :mod:`themepipe.tasks.watch`.
"""

from __future__ import annotations

from . import steps
from .graph import Node, Parallel, Series, Step

DEFAULT_TASK = "default"
WATCH_TASK = "watch"

clean = Step("clean", steps.clean, "Delete generated assets and OS metadata files")
image_minify = Step("imageMinify", steps.image_minify, "Optimize new or changed images")
create_pot = Step("createPot", steps.create_pot, "Generate the translation template")

main_script = Step("mainScript", steps.main_script, "Copy theme scripts")
user_script = Step("userScript", steps.user_script, "Transpile and bundle user scripts")
vendor_script = Step("vendorScript", steps.vendor_script, "Bundle vendor scripts")

main_css = Step("mainCSS", steps.main_css, "Development stylesheet with source map")
build_main_css = Step("buildMainCSS", steps.build_main_css, "Production stylesheet")
css_atf = Step("cssAtf", steps.css_atf, "Above-the-fold stylesheet")
editor_css = Step("editorCSS", steps.editor_css, "Editor stylesheet")

style = Parallel("style", (main_css, css_atf, editor_css), "Development stylesheets")
scripts = Parallel("scripts", (vendor_script, user_script, main_script), "All scripts")

build_all = Series(
    "BuildAll",
    (
        clean,
        Parallel(
            "<parallel>",
            (image_minify, create_pot, build_main_css, scripts, css_atf, editor_css),
        ),
    ),
    "Clean, then build every asset",
)

TASKS: dict[str, Node] = {
    node.name: node
    for node in (
        clean,
        image_minify,
        create_pot,
        main_script,
        user_script,
        vendor_script,
        main_css,
        build_main_css,
        css_atf,
        editor_css,
        style,
        scripts,
        build_all,
    )
}
TASKS["build"] = build_all
TASKS[DEFAULT_TASK] = build_all


def task_names() -> list[str]:
    return sorted([*TASKS, WATCH_TASK], key=str.lower)


def get_task(name: str) -> Node:
    """Look up a task by name.

    Raises:
        KeyError: when no task has that name
    """
    try:
        return TASKS[name]
    except KeyError:
        raise KeyError(f"Task '{name}' is not in your task list (try --list)") from None
