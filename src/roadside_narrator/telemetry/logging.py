"""Logging setup for the service and CLI."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

LOGGER_NAMESPACE = "roadside_narrator"


def configure_logging(level: str = "INFO", *, force: bool = False) -> logging.Logger:
    """Install a rich console handler on the package logger namespace.

    Module loggers (``roadside_narrator.cache`` and friends) emit snake_case event
    names with structured ``extra`` fields; the handler only renders the message.
    """
    logger = logging.getLogger(LOGGER_NAMESPACE)
    if logger.handlers and not force:
        logger.setLevel(level.upper())
        return logger

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s - %(message)s", datefmt="%H:%M:%S"))
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger
