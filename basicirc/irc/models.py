"""Shared IRC data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class SessionState(Enum):
    CREATED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    TERMINATED = auto()


@dataclass(frozen=True, slots=True)
class ProbeLine:
    """Server liveness probe (``PING :<token>``)."""

    token: str
    raw: str


@dataclass(frozen=True, slots=True)
class ChannelMessage:
    """A PRIVMSG addressed to a channel or to us."""

    sender: str
    target: str
    body: str
    raw: str


@dataclass(frozen=True, slots=True)
class OtherLine:
    raw: str


InboundLine = ProbeLine | ChannelMessage | OtherLine
