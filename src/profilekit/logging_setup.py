"""Console logging bootstrap for the CLI.

Library modules only create loggers; handlers are installed here, once,
at CLI startup.
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LEVEL = os.environ.get("PROFILEKIT_LOG_LEVEL", "WARNING").upper()


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    level = "DEBUG" if verbose else DEFAULT_LEVEL
    logger = logging.getLogger("profilekit")
    logger.setLevel(getattr(logging, level, logging.WARNING))
    # Replace any handler from an earlier call to avoid duplicate output
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(
        RichHandler(
            console=console or Console(stderr=True),
            show_time=False,
            show_path=verbose,
            markup=False,
        ),
    )
    logger.propagate = False
