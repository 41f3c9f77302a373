"""Logging and operational telemetry helpers."""

from .logging import LOGGER_NAMESPACE, configure_logging

__all__ = ["LOGGER_NAMESPACE", "configure_logging"]
