from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)

SHELL = ["bash", "-c"]


def run(cmd: str) -> int:
    """Run ``cmd`` attached to the current terminal and return its exit code."""
    logger.info("running: %s", cmd)
    proc = subprocess.run([*SHELL, cmd])
    logger.info("exit code %s", proc.returncode)
    return proc.returncode
