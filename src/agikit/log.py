"""Logging configuration for agikit."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(log_path: Path | None, level: str = "INFO") -> None:
    """Configure the package logger.

    Logs go to a rotating file when ``log_path`` is set, otherwise to stderr
    (stdout carries the AGI protocol in script mode). Idempotent: skips if a
    handler is already attached.
    """
    root = logging.getLogger("agikit")
    if root.handlers:
        return

    handler: logging.Handler
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt="%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))

    root.setLevel(level)
    root.addHandler(handler)
