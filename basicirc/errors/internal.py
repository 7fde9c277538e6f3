"""Error hierarchy of the IRC client.

These exceptions provide semantic categories for the session boundary. Raw
socket / asyncio errors never leave the session unwrapped; they are chained
as ``__cause__`` of one of the classes below.

Classes:
  InternalError          – Base for all internal errors.
  ConfigError            – Missing or invalid configuration.
  NetworkError           – Transport/IO failure on the IRC connection.
  ResolutionError        – Server endpoint could not be resolved.
  DialError              – TCP connection could not be opened.
  ConnectionClosedError  – Peer closed the stream or no live connection.
  HandshakeError         – A registration/join step failed.

None of these are retried by the session itself; the reconnect policy in
``irc.connection`` works on whole sessions, not on single operations.
"""

from __future__ import annotations

from collections.abc import Mapping


class InternalError(Exception):
    """Root of every error raised by the client.

    Attributes:
        data: Structured context (step, endpoint, channel...) merged into the
            error log by ``log_error``.
    """

    data: dict[str, object]

    def __init__(self, message: str, *, data: Mapping[str, object] | None = None):
        super().__init__(message)
        self.data = {**data} if data else {}


class ConfigError(InternalError):
    """Exception raised when the configuration file is missing or invalid."""


class NetworkError(InternalError):
    """Exception raised for network or transport layer errors.

    This covers failed writes, failed reads (other than a tolerated
    non-blocking timeout) and any operation attempted without a live
    connection.
    """


class ResolutionError(NetworkError):
    """Exception raised when ``server:port`` cannot be resolved to IPv4."""


class DialError(NetworkError):
    """Exception raised when the TCP connection cannot be established."""


class ConnectionClosedError(NetworkError):
    """Exception raised when the peer closed the stream.

    Also raised for writes attempted on a session that was never connected
    or has already been terminated.
    """


class HandshakeError(InternalError):
    """Exception raised when a handshake step fails.

    Args:
        step: Name of the failing step (``nick``, ``user``, ``join`` ...).
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    def __init__(
        self,
        step: str,
        message: str,
        *,
        data: Mapping[str, object] | None = None,
    ) -> None:
        merged = {"step": step, **(dict(data) if data else {})}
        super().__init__(message, data=merged)
        self.step = step


__all__ = [
    "InternalError",
    "ConfigError",
    "NetworkError",
    "ResolutionError",
    "DialError",
    "ConnectionClosedError",
    "HandshakeError",
]
