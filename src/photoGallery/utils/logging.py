"""Logging helpers for photoGallery."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "photoGallery"

_INSTALLED_HANDLERS: set[str] = set()


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or a child of it when *name* is given."""

    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def ensure_console_logger(
    logger: logging.Logger,
    handler_name: str,
    *,
    level: int = logging.INFO,
    fmt: str = "%(message)s",
) -> None:
    if handler_name in _INSTALLED_HANDLERS:
        return
    for handler in logger.handlers:
        if getattr(handler, "name", None) == handler_name:
            _INSTALLED_HANDLERS.add(handler_name)
            return
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.name = handler_name
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    logger.setLevel(level)
    _INSTALLED_HANDLERS.add(handler_name)
