"""Logging setup. curses owns the terminal, so records go to a rotating file."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_PATH = Path.home() / ".local" / "state" / "cgview" / "cgview.log"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
MAX_BYTES = 1024 * 1024
BACKUP_COUNT = 3

_HANDLER_ATTR = "_cgview_handler"


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.WARNING


def configure_logging(level: str | int = "WARNING", path: Path | None = None) -> Path:
    """Attach a rotating file handler to the ``cgview`` logger.

    Calling it again replaces the previous handler instead of stacking
    another one. Returns the log file path in use.
    """
    log_path = path or DEFAULT_LOG_PATH
    logger = logging.getLogger("cgview")
    logger.setLevel(_parse_level(level))
    logger.propagate = False

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            logger.removeHandler(handler)
            handler.close()

    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    return log_path
