"""Logging for the spacesync CLI and engine.

loguru is the only sink.  stdout belongs to command output, so log records
go to stderr (or any writable the caller passes).  boto3 and botocore log
through stdlib ``logging``; those records are bridged into loguru so the S3
backend reports in the same format as the engine.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from loguru import logger

# stdlib loggers that stay at WARNING unless spacesync itself runs at DEBUG.
_CHATTY_LIBRARIES = ("boto3", "botocore", "s3transfer", "urllib3")

_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)


class _StdlibBridge(logging.Handler):
    """Forward stdlib ``logging`` records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the library call-site.
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, sink: TextIO | None = None) -> None:
    """Route everything through one loguru sink at ``level``.

    Safe to call more than once; each call replaces the previous sink.
    """
    level = level.upper()

    logger.remove()
    logger.add(sink or sys.stderr, level=level, format=_FORMAT)

    logging.basicConfig(handlers=[_StdlibBridge()], level=0, force=True)
    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    logger.debug("Logging configured (level={})", level)
