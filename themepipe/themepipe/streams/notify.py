"""User-facing error notifications for failed transforms.

A notification never raises: the failing step records it and carries on (or
stops its own pipeline) while the rest of the task graph keeps running.
"""

from __future__ import annotations

import logging

from ..core.models import StepReport

logger = logging.getLogger(__name__)

SASS_ERROR = "SASS Error"
BABEL_ERROR = "Babel Error"
IMAGEMIN_ERROR = "Imagemin Error"
TRANSLATION_ERROR = "Translation Error"
UGLIFY_ERROR = "Uglify Error"


def notify_error(report: StepReport, title: str, exc: BaseException) -> str:
    """Surface a transform failure and record it on the step report.

    Args:
        report: Report of the step that failed
        title: Category of the failing step, e.g. ``SASS Error``
        exc: The underlying error; its message is shown verbatim

    Returns:
        The notification text
    """
    message = f"{title}: Error: {exc}"
    logger.error(message)
    report.errors.append(message)
    return message
