"""IRC line framing, trimming, parsing and classification."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..constants import IRC_LINE_TERMINATOR
from .models import ChannelMessage, InboundLine, OtherLine, ProbeLine

PING_PATTERN = re.compile(r"^PING :([\w.]+)$")

# Characters stripped from both ends of every received chunk.
REPLY_TRIM_CHARS = " \t\n\r\x00"

# CRLF, or a bare CR or LF from lenient servers.
LINE_BREAK = re.compile(r"\r\n|[\r\n]")


def frame_line(text: str) -> bytes:
    """Encode ``text`` with the IRC line terminator appended."""
    return f"{text}{IRC_LINE_TERMINATOR}".encode()


def trim_reply(text: str) -> str:
    return text.strip(REPLY_TRIM_CHARS)


def split_complete_lines(buffer: str) -> tuple[list[str], str]:
    """Split ``buffer`` into its terminated lines and the unterminated rest.

    Blank lines are dropped. The rest is ``""`` when ``buffer`` ends with a
    line break and should be prepended to the next chunk otherwise.
    """
    *lines, rest = LINE_BREAK.split(buffer)
    return [line for line in lines if line.strip(REPLY_TRIM_CHARS)], rest


@dataclass(frozen=True, slots=True)
class IRCMessage:
    raw: str
    prefix: str | None
    command: str | None
    params: str


def parse_irc_message(raw_line: str) -> IRCMessage:
    """Split ``[:prefix] COMMAND [middle ...] [:trailing]``.

    The middle parameters and the trailing one are joined back with single
    spaces; a line holding only a prefix has no command.
    """
    prefix: str | None = None
    rest = raw_line
    if rest.startswith(":"):
        prefix, _, rest = rest[1:].partition(" ")

    head, sep, trailing = rest.partition(" :")
    if not sep and head.startswith(":"):
        head, sep, trailing = "", ":", head[1:]

    words = head.split()
    command = words[0].upper() if words else None
    params = words[1:]
    if sep:
        params.append(trailing)
    return IRCMessage(
        raw=raw_line, prefix=prefix, command=command, params=" ".join(params)
    )


def build_channel_message(parsed: IRCMessage) -> ChannelMessage | None:
    if parsed.command != "PRIVMSG":
        return None
    target, sep, body = parsed.params.partition(" ")
    if not sep:
        return None
    # nick!user@host
    sender = (parsed.prefix or "?").split("!", 1)[0]
    return ChannelMessage(sender=sender, target=target, body=body, raw=parsed.raw)


def probe_token(line: str) -> str | None:
    """Return the token of a ``PING :<token>`` line, ``None`` otherwise."""
    match = PING_PATTERN.match(line)
    if match is None:
        return None
    return match.group(1)


def classify_line(line: str) -> InboundLine:
    """Map one received line onto the closed set of inbound variants."""
    line = trim_reply(line)
    token = probe_token(line)
    if token is not None:
        return ProbeLine(token=token, raw=line)
    message = build_channel_message(parse_irc_message(line))
    if message is not None:
        return message
    return OtherLine(raw=line)
