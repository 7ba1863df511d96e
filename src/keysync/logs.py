"""Logging setup and run-scoped loggers."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from keysync.config.schema import LoggingConfig

ROOT_LOGGER = "keysync"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(cfg: LoggingConfig, *, verbose: bool = False) -> logging.Logger:
    """Configure the ``keysync`` logger tree. Safe to call more than once."""
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level = logging.DEBUG if verbose else getattr(logging, cfg.level.upper(), logging.INFO)
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)
    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if cfg.file:
        file_handler = logging.FileHandler(cfg.file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def run_logger(target: Optional[str] = None) -> logging.Logger:
    """Return the logger a run and its collaborators write to.

    Records land under ``keysync.run.<target>`` so output from one
    configured run can be told apart from another.
    """
    name = f"{ROOT_LOGGER}.run"
    if target:
        name = f"{name}.{target}"
    return logging.getLogger(name)
