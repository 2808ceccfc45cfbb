"""Loguru configuration for the dotlnk command line."""

import sys

from loguru import logger

from .config import PROJECT_NAME


def setup_logging(verbose: bool = False) -> None:
    """
    Send dotlnk's diagnostics to stderr.

    Warnings and errors are shown by default; ``verbose`` adds the debug
    trace of every move, link and git step.
    """
    logger.remove()
    logger.enable(PROJECT_NAME)

    if verbose:
        logger.add(
            sys.stderr,
            level="DEBUG",
            format="<green>{time:HH:mm:ss}</green> <level>{level: <8}</level> "
            "{name}:{function} - {message}",
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            level="WARNING",
            format="<level>{level}</level>: {message}",
            colorize=True,
        )
