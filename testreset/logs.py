"""
Logging setup.

Modules log through ``logging.getLogger(__name__)``; the host process calls
``configure_logging()`` once to route records through rich.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "testreset"


def configure_logging(
    level: str = "WARNING",
    quiet: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Attach a RichHandler to the package logger.

    Args:
        level: Log level name (DEBUG, INFO, ...)
        quiet: Only report errors
        console: Console to render to (stderr by default)

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.ERROR if quiet else level.upper())

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
