"""Logging for the ``spendwise`` package.

Library modules ask for ``get_logger("spendwise.<module>")`` and never attach
handlers themselves. Entrypoints (the CLI) call :func:`configure_logging` once
to route the package logger to a stream. Until then the package logger carries
a ``NullHandler`` and stays silent.

Log lines are ``event key=value ...`` pairs, for example
``classify:chunk_done chunk_index=0 num_transactions=50 latency_ms=812.40``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "spendwise"
LEVEL_ENV_VAR = "SPENDWISE_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s %(message)s"

# Marks the handler installed by configure_logging so repeat calls are no-ops.
_HANDLER_ATTR = "_spendwise_handler"


def resolve_level(level: int | str | None = None) -> int:
    """Turn an explicit level, or ``$SPENDWISE_LOG_LEVEL``, into a number.

    Accepts ints, digit strings and level names in any case. Anything
    unrecognized means ``INFO``.
    """

    raw = os.getenv(LEVEL_ENV_VAR) if level is None else level
    if isinstance(raw, int):
        return raw
    text = (raw or "").strip().upper()
    if text.isdigit():
        return int(text)
    return logging.getLevelNamesMapping().get(text, logging.INFO)


def _installed_handler(logger: logging.Logger) -> logging.Handler | None:
    return next((h for h in logger.handlers if getattr(h, _HANDLER_ATTR, False)), None)


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> logging.Logger:
    """Attach one stream handler to the package logger and return it.

    Safe to call repeatedly; only the first call installs a handler. The
    package logger stops propagating to the root logger afterwards.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    if _installed_handler(logger) is not None:
        return logger

    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream)
    setattr(handler, _HANDLER_ATTR, True)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    handler.setLevel(resolved)
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
