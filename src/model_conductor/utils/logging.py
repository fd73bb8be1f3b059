"""Logging configuration."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from model_conductor import constants
from model_conductor.utils.pathing import ensure_runtime_directories


def setup_logging(level: int = logging.INFO, console_level: int = logging.WARNING) -> None:
    """Configure root logging with stderr console + file handlers.

    The console handler writes to stderr only: stdout is reserved for the
    resolved model identifier.
    """
    ensure_runtime_directories()
    log_file = constants.LOG_DIR / "model-conductor.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(console_level)

    file_handler = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=5)
    file_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(min(level, console_level))
    root.handlers.clear()
    root.addHandler(console_handler)
    root.addHandler(file_handler)
