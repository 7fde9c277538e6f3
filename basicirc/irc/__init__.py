"""IRC subsystem package.

Contains the session (connect, line transport, probe replies), the
handshake sequencer, line parsing/classification, the receive loop and the
reconnect runner.
"""

from .connection import ReconnectController, SessionOutcome  # noqa: F401
from .dispatcher import LineDispatcher  # noqa: F401
from .handshake import HandshakeSequencer  # noqa: F401
from .models import (  # noqa: F401
    ChannelMessage,
    InboundLine,
    OtherLine,
    ProbeLine,
    SessionState,
)
from .parser import classify_line, frame_line, parse_irc_message, trim_reply  # noqa: F401
from .probe import ProbeCounter  # noqa: F401
from .session import Session  # noqa: F401

__all__ = [
    "ChannelMessage",
    "HandshakeSequencer",
    "InboundLine",
    "LineDispatcher",
    "OtherLine",
    "ProbeCounter",
    "ProbeLine",
    "ReconnectController",
    "Session",
    "SessionOutcome",
    "SessionState",
    "classify_line",
    "frame_line",
    "parse_irc_message",
    "trim_reply",
]
