from __future__ import annotations

import logging

from ..logging_config import log_structured_error
from .internal import (
    ConfigError,
    HandshakeError,
    InternalError,
    NetworkError,
)


def log_error(message: str, error: Exception, context: dict = None) -> None:
    """Logs an error message with the associated exception details.

    The exception is mapped to a category so the error aggregator can group
    occurrences (network, handshake, config, internal, unknown).

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    error_type = classify_error(error)
    merged = dict(context or {})
    if isinstance(error, InternalError) and error.data:
        for key, value in error.data.items():
            merged.setdefault(key, value)

    log_structured_error(
        error_type=error_type,
        message=f"{message}: {str(error)}",
        exception=error,
        context=merged or None,
        level=logging.ERROR,
    )


def classify_error(error: BaseException) -> str:
    """Return the aggregation category for an exception."""
    if isinstance(error, HandshakeError):
        return "handshake"
    if isinstance(error, NetworkError | OSError | ConnectionError | TimeoutError):
        return "network"
    if isinstance(error, ConfigError):
        return "config"
    if isinstance(error, InternalError):
        return "internal"
    return "unknown"
