"""Logging for ``asset_tracker``.

Everything logs under the ``asset_tracker`` logger tree. Modules fetch their
logger with ``get_logger(__name__)``-style names and never add handlers; the
CLI calls ``configure_logging()`` once at startup to route records to stderr.
Until then the tree carries only a ``NullHandler``, so importing the package
as a library stays silent.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_ROOT = "asset_tracker"
_LEVEL_ENV = "ASSET_TRACKER_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_configured = False


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        logging.Handler.__init__(self)

    @property
    def stream(self) -> IO[str]:
        return sys.stderr


def _level_from(value: int | str | None) -> int:
    if value is None:
        value = os.getenv(_LEVEL_ENV) or logging.INFO
    if isinstance(value, int):
        return value
    name = value.strip().upper()
    if name.isdigit():
        return int(name)
    level = logging.getLevelName(name)
    # getLevelName returns "Level X" for unknown names.
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Send ``asset_tracker`` records to a single stream handler.

    Only the first call has any effect. ``level`` accepts a number or a level
    name and defaults to ``$ASSET_TRACKER_LOG_LEVEL``, then INFO. Without
    ``stream`` the handler writes to the ``sys.stderr`` current at emit time,
    so redirected stderr (test runners, ``contextlib.redirect_stderr``) is
    honoured.
    """

    global _configured
    if _configured:
        return

    root = logging.getLogger(_ROOT)
    for h in [h for h in root.handlers if isinstance(h, logging.NullHandler)]:
        root.removeHandler(h)

    resolved = _level_from(level)
    handler = _StderrHandler() if stream is None else logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    root.setLevel(resolved)
    root.addHandler(handler)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(_ROOT)
    if not _configured and not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
