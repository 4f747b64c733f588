"""Centralized logging configuration for the ``staging_review`` package.

This module provides two public helpers:

- ``configure_logging(...)``: attach a single handler to the package root
  logger (``"staging_review"``). Intended to be called once by entrypoints
  (the CLI) at process startup.
- ``get_logger(name)``: acquire a logger by name, ensuring that the package
  root logger has at least a ``NullHandler`` attached when not configured.

The interactive review screen owns the terminal, so the ``review`` command
points logging at a file instead of ``stderr``. Library modules must never
attach their own handlers; they call ``get_logger("staging_review.<module>")``
and rely on the configuration performed by the CLI or host application.
"""

from __future__ import annotations

import logging
import os
import sys
from os import PathLike
from typing import IO

_PKG_LOGGER_NAME = "staging_review"
_LEVEL_ENV = "STAGING_REVIEW_LOG_LEVEL"
_DEFAULT_FMT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        # Numeric strings or standard level names (INFO/DEBUG/etc.)
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
        return logging.INFO
    env_val = os.getenv(_LEVEL_ENV)
    if env_val:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
    log_file: str | PathLike[str] | None = None,
) -> None:
    """Configure the package root logger exactly once.

    Parameters
    ----------
    level:
        Logging level as ``int`` or level-name string. When ``None``, the
        ``STAGING_REVIEW_LOG_LEVEL`` environment variable is consulted, then
        ``logging.INFO``.
    fmt:
        Optional format string; defaults to
        ``"%(asctime)s %(name)s %(levelname)s %(message)s"``.
    stream:
        Stream for the ``StreamHandler`` when ``log_file`` is not given.
    log_file:
        When set, log records are appended to this file instead of ``stream``.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(os.fspath(log_file), encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FMT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name, with a silent default until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
