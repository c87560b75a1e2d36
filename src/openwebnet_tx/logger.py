#!/usr/bin/env python3
"""OpenWebNet - a frame logger, with colored console output & rotating log files.

Frames (sent and received) are logged at INFO on the frame log; errors at WARNING.
"""

from __future__ import annotations

import logging
import shutil
import sys
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler

import colorlog

from .version import VERSION

DEFAULT_FMT = "%(asctime)s.%(msecs)03d %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"

CONSOLE_COLS = int(shutil.get_terminal_size(fallback=(int(2e3), 24)).columns - 1)

FRAME_DATEFMT = "%Y-%m-%dT%H:%M:%S"
FRAME_LOG_FMT = "%(asctime)s.%(msecs)03d%(frame)s%(message)s"
CONSOLE_FMT = (
    f"%(log_color)s%(asctime)s.%(msecs)03d%(frame).{CONSOLE_COLS - 24}s%(message)s"
)

LOG_COLOURS = {
    "DEBUG": "white",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "bold_red",
    "CRITICAL": "bold_red",
}  # default_log_colors


def _add_frame_attr(record: logging.LogRecord) -> bool:
    """Give every record a frame attr (it is optional for callers)."""
    if not hasattr(record, "frame"):
        record.frame = ""
    return True


def set_frame_logging(
    logger: logging.Logger,
    cc_console: bool = False,
    file_name: str | None = None,
    rotate_backups: int = 0,
    rotate_bytes: int | None = None,
) -> None:
    """Create/configure handlers, formatters, etc.

    Parameters:
    - rotate_backups: keep this many copies, and rotate at midnight unless:
    - rotate_bytes:   rotate log files when log > rotate_bytes
    """

    logger.propagate = False  # log file is distinct from any app/debug logging
    logger.setLevel(logging.DEBUG)  # must be at least .INFO

    # as set_frame_logging() may be called several times: to avoid duplicates in logs...
    for handler in list(logger.handlers):  # not hasHandlers(), as not propagating
        logger.removeHandler(handler)
    if _add_frame_attr not in logger.filters:
        logger.addFilter(_add_frame_attr)

    handler: logging.Handler

    if file_name:
        if rotate_bytes:
            rotate_backups = rotate_backups or 2
            handler = RotatingFileHandler(
                file_name, maxBytes=rotate_bytes, backupCount=rotate_backups
            )
        elif rotate_backups:
            handler = TimedRotatingFileHandler(
                file_name, when="MIDNIGHT", backupCount=rotate_backups
            )
        else:
            handler = logging.FileHandler(file_name)

        handler.setFormatter(logging.Formatter(FRAME_LOG_FMT, datefmt=FRAME_DATEFMT))
        handler.setLevel(logging.INFO)
        handler.addFilter(lambda r: r.levelno in (logging.INFO, logging.WARNING))
        logger.addHandler(handler)

    elif cc_console:
        logger.addHandler(logging.NullHandler())

    else:
        logger.setLevel(logging.CRITICAL)
        return

    if cc_console:  # CC: output to stdout/stderr
        console_fmt = colorlog.ColoredFormatter(
            CONSOLE_FMT, datefmt=FRAME_DATEFMT, reset=True, log_colors=LOG_COLOURS
        )

        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(console_fmt)
        handler.setLevel(logging.WARNING)
        logger.addHandler(handler)

        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(console_fmt)
        handler.setLevel(logging.DEBUG)
        handler.addFilter(lambda r: r.levelno < logging.WARNING)
        logger.addHandler(handler)

    logger.warning(" # openwebnet_tx %s", VERSION)  # initial log line
