from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from .profiles import _work_dir


APP_LOGGER_NAME = "buyerlookup"

_LOGGER: logging.Logger | None = None


def get_logger(name: str | None = None, *, log_dir: Path | None = None) -> logging.Logger:
    """Return the application logger, or a named child of it.

    The first call attaches a rotating file handler (<work>/logs/app.log) and a
    stdout handler to the ``buyerlookup`` logger; later calls reuse it.
    """
    global _LOGGER
    if _LOGGER is None:
        _LOGGER = _configure(log_dir)
    if name:
        return _LOGGER.getChild(name)
    return _LOGGER


def set_level(level: int) -> None:
    """Apply ``level`` to the application logger and all of its handlers."""

    logger = get_logger()
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def _configure(log_dir: Path | None) -> logging.Logger:
    base = Path(log_dir) if log_dir is not None else _work_dir() / "logs"
    base.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger.handlers.clear()

    fmt = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(
        base / "app.log", maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(fmt)
    logger.addHandler(file_handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(fmt)
    logger.addHandler(console)
    return logger
