"""Logging configuration for the ``spendsheet`` package.

Two helpers are public:

- ``configure_logging(...)``: attach one ``StreamHandler`` to the package
  logger (``"spendsheet"``). Called once by entry points (the ``spendsheet``
  CLI, the Streamlit app) at startup.
- ``get_logger(name)``: return a logger by name. Until ``configure_logging``
  has run, the package logger gets a ``NullHandler`` so library use stays
  silent.

Library modules never attach handlers of their own. They call
``get_logger(__name__)`` and leave output to the entry point.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "spendsheet"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        # Numeric strings or level names ("INFO", "debug", ...).
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    env_val = os.getenv("SPENDSHEET_LOG_LEVEL")
    if env_val:
        return _parse_level(env_val)
    return logging.WARNING


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package logger, once per process.

    Parameters
    ----------
    level:
        ``int`` or level name. When ``None``, the ``SPENDSHEET_LOG_LEVEL``
        environment variable is used if set, otherwise ``logging.WARNING``
        so CLI runs only surface identification failures and missing columns.
    fmt:
        Optional format string, defaulting to
        ``"%(asctime)s %(name)s %(levelname)s %(message)s"``.
    stream:
        Destination of the handler; ``sys.stderr`` keeps stdout free for
        ``--json`` output.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    # The placeholder NullHandler from get_logger is replaced.
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setLevel(_parse_level(level))
    handler.setFormatter(logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s"))

    logger.setLevel(_parse_level(level))
    logger.addHandler(handler)
    # Records must not reach the root logger a second time.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``.

    Before ``configure_logging`` runs, a ``NullHandler`` is attached to the
    package logger so warnings logged by the pipeline during library use
    produce no output.
    """
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
