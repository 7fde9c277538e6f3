"""Error hierarchy and error logging helpers."""

from .handling import classify_error, log_error  # noqa: F401
from .internal import (  # noqa: F401
    ConfigError,
    ConnectionClosedError,
    DialError,
    HandshakeError,
    InternalError,
    NetworkError,
    ResolutionError,
)

__all__ = [
    "InternalError",
    "ConfigError",
    "NetworkError",
    "ResolutionError",
    "DialError",
    "ConnectionClosedError",
    "HandshakeError",
    "classify_error",
    "log_error",
]
