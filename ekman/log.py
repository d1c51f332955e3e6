"""Logging setup for the command-line tool."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(verbosity: int = 0, log_file: Optional[Path] = None) -> logging.Logger:
    """
    (Re)configure the "ekman" logger: warnings by default, -v for info, -vv for debug.
    Reports go to stdout, so log records go to stderr (and log_file if given).
    """
    logger = logging.getLogger("ekman")
    level = logging.WARNING if verbosity <= 0 else logging.INFO if verbosity == 1 else logging.DEBUG
    logger.setLevel(level)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    formatter = logging.Formatter(FORMAT)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger
