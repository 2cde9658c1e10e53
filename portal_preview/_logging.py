"""Logging setup for the ``preview`` entry points.

Library modules only create module-level loggers; handlers are installed once
by the CLI (or an embedding server) through :func:`configure_logging`.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = "INFO", *, debug: bool = False) -> logging.Logger:
    """Install a single stderr handler on the ``portal_preview`` logger.

    Parameters
    ----------
    level : str or int, optional
        Threshold for emitted records. Defaults to ``"INFO"``.
    debug : bool, optional
        Force ``DEBUG`` regardless of ``level``; used when the preview config
        enables debug mode.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    logger = logging.getLogger("portal_preview")
    resolved = logging.DEBUG if debug else level
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
    logger.setLevel(resolved)
    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


__all__ = ["configure_logging"]
