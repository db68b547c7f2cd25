"""
Logging setup for Corvo Playground.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

_ROOT_LOGGER = "corvo_playground"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the package namespace."""
    return logging.getLogger(name)


def setup_logging(
    level: int | str = logging.INFO,
    *,
    rich_output: bool = True,
    console: Console | None = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Logging level name or number
        rich_output: Render records with ``rich`` instead of plain text
        console: Console used by the rich handler (stderr by default)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if rich_output:
        handler: logging.Handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    logger.addHandler(handler)
    logger.propagate = False
    return logger
