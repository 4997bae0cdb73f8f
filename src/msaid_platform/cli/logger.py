"""Logging helpers for the msaid-platform CLI.

The library modules only create named loggers (e.g., `cache/fetch`); the
CLI is the single place where handlers and levels are configured.
"""

from __future__ import annotations

import logging
import os
import sys

import colorlog

LOG_COLORS = {
    "DEBUG": "bold_cyan",
    "INFO": "bold_green",
    "WARNING": "bold_yellow",
    "ERROR": "bold_red",
    "CRITICAL": "bold_red,bg_white",
}

_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _use_color() -> bool:
    """Whether stderr is a terminal and the user did not set NO_COLOR."""
    if os.getenv("NO_COLOR") is not None:
        return False
    return sys.stderr.isatty()


def configure_logging(verbose: bool) -> None:
    """
    Configure the root logger for CLI usage.

    Records are written to stderr as `[time] <logger> LEVEL: message`,
    colored with colorlog when `_use_color()` allows it.

    Arguments:
        verbose: emit DEBUG records when True, INFO and above otherwise.
    """
    level = logging.DEBUG if verbose else logging.INFO
    if not _use_color():
        logging.basicConfig(
            level=level,
            format="[%(asctime)s] <%(name)s> %(levelname)s: %(message)s",
            datefmt=_DATEFMT,
        )
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        colorlog.ColoredFormatter(
            fmt="%(log_color)s[%(asctime)s] <%(name)s> %(levelname)s:%(reset)s %(message)s",
            log_colors=LOG_COLORS,
            datefmt=_DATEFMT,
        )
    )
    logging.basicConfig(level=level, handlers=[handler])
