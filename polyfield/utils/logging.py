"""
Log setup for the PolyField client.

All modules log through ``from loguru import logger``; this module only
decides where those records go.
"""

import os
import pathlib
import sys

from loguru import logger

DEFAULT_LOGLEVEL = "INFO"


def log_default_path() -> str:
    return str(pathlib.Path.home().joinpath(".polyfield/polyfield.log"))


def start_log(
    log_to_file=True,
    log_to_stdout=False,
    log_path=None,
    clear_prev=True,
    log_level=DEFAULT_LOGLEVEL,
):
    """
    Replace loguru's default stderr sink with the client's sinks.

    Args:
        log_to_file: Write records to ``log_path``
        log_to_stdout: Also echo records to stderr (colourised)
        log_path: Log file path, defaults to ``log_default_path()``
        clear_prev: Delete the previous session's log first
        log_level: Minimum level for every sink

    Returns:
        The resolved log file path (None when not logging to file)
    """
    if log_path is None or log_path == "":
        log_path = log_default_path()
    else:
        log_path = os.path.abspath(log_path)

    if clear_prev:
        clear_log(log_path)

    # first remove (default) stderr output
    logger.remove()

    if log_to_file:
        pathlib.Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_path, level=log_level, enqueue=True, colorize=False)
    if log_to_stdout:
        logger.add(sys.stderr, level=log_level, enqueue=True, colorize=True)

    if log_to_file:
        logger.info("PolyField log started at {}", log_path)
        return log_path
    logger.info("PolyField log started.")
    return None


def clear_log(log_path: str):
    """Delete the log file at ``log_path`` if it exists."""
    if os.path.exists(log_path):
        try:
            os.remove(log_path)
        except PermissionError:
            logger.error(
                f"Could not clear log file {log_path}. Permission denied. Continuing."
            )
