# tensor_explorer/logging.py
"""
Loguru setup for the ``tensorx`` command.

Rich tables and panels are the command's output and go to stdout. Log records
go to stderr, so ``tensorx tree model.gguf > tree.txt`` keeps the report clean
while skipped files and missing shards still show on the terminal.

Without ``--debug`` only warnings about skipped inputs and other INFO-level
records are shown, in a short format. ``--debug`` adds decode and tree-build
timings and the source location of each record.
"""
from __future__ import annotations

import sys

from loguru import logger

SHORT_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"

DEBUG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "| <level>{level: <8}</level> "
    "| <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> "
    "- <level>{message}</level>"
)


def configure_logging(*, debug: bool = False) -> None:
    """Replace any loguru sinks with a single stderr sink.

    Args:
        debug: Show DEBUG records with timestamps and source locations.
    """
    logger.remove()
    if debug:
        logger.add(sys.stderr, level="DEBUG", format=DEBUG_FORMAT, backtrace=True, diagnose=True)
    else:
        logger.add(sys.stderr, level="INFO", format=SHORT_FORMAT, backtrace=False, diagnose=False)
