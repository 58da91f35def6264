"""Rich-based logging for dotf."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "dotf"


def setup_logging(level: int | str = logging.INFO, *, console: Console | None = None) -> logging.Logger:
    """Attach a single ``RichHandler`` to the ``dotf`` logger.

    Calling this again replaces the handler, so repeated CLI invocations in one
    process (tests) do not duplicate output.
    """

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        show_level=True,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
