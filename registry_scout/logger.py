# registry_scout/logger.py
"""Logging setup for RegistryScout.

Every module logs through a child of the ``RegistryScout`` logger, obtained
with :func:`get_logger`; handlers live on the parent only::

    log = get_logger("table")
    log.info("Page %d read", 3)

The CLI calls :func:`init_logging` once per invocation, which replaces the
handlers installed at import time. Output goes to stdout and, optionally, to a
rotating log file. Chatty library loggers (aiohttp access log, asyncio,
Playwright's driver) are held at WARNING unless the project runs at DEBUG.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, List, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "RegistryScout"

NOISY_LOGGERS: Final[tuple] = ("aiohttp.access", "aiohttp.server", "asyncio", "playwright")

_LevelT = Union[int, str]


def _build_handlers(log_file: str | Path | None, fmt: str) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(
            RotatingFileHandler(
                filename=str(log_file),
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _quiet_libraries(project_level: int) -> None:
    level = logging.DEBUG if project_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Attach handlers to the ``RegistryScout`` logger and return it.

    ``level`` accepts a name (``"DEBUG"``) or a number. With
    ``replace_handlers=False`` the new handlers are added next to the existing
    ones, which is how a second log file can be attached at runtime.
    """
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level)

    if replace_handlers:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    for handler in _build_handlers(log_file, log_format):
        root.addHandler(handler)

    root.propagate = False
    _quiet_libraries(root.level)
    return root


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Fresh configuration, dropping whatever handlers were installed before."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


def get_logger(component: str) -> logging.Logger:
    """``RegistryScout.<component>``; inherits level and handlers from the project logger."""
    return logging.getLogger(f"{LOGGER_NAME}.{component}")


logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "get_logger", "DEFAULT_FORMAT", "LOGGER_NAME"]
