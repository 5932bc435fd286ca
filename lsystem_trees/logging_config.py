"""
Logging for the command line tool and scripts.

Library modules only create `logging.getLogger(__name__)` loggers; handlers are
attached here, once, on the `lsystem_trees` package logger.
"""
import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "lsystem_trees"

CONSOLE_FORMAT = "%(levelname)-7s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _remove_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Route the package log to stderr and, optionally, to a file.

    Calling it again replaces (and closes) the handlers of the previous call,
    so a log file opened earlier is flushed and released.

    Args:
        level: Logging level for both handlers
        log_file: Optional path, truncated on every call

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    _remove_handlers(logger)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    logger.debug("Logging to stderr%s", f" and {log_file}" if log_file else "")
    return logger
