from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "termi"
FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(
    path: Optional[Path] = None,
    verbose: bool = False,
    max_bytes: int = 1_000_000,
    backups: int = 3,
) -> logging.Logger:
    """Configure the package logger.

    Without a file and without ``verbose`` nothing is emitted, so the
    full-screen dialogue is never interleaved with log lines.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = False
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    fmt = logging.Formatter(FORMAT)

    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(path, encoding="utf-8", maxBytes=max_bytes, backupCount=backups)
        fh.setFormatter(fmt)
        logger.addHandler(fh)
    if verbose:
        sh = logging.StreamHandler(sys.stderr)
        sh.setFormatter(fmt)
        logger.addHandler(sh)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger
