"""Registration handshake: resolve, dial, NICK/USER, identify, join."""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import TYPE_CHECKING

from ..constants import IRC_IDENTIFY_SERVICE, IRC_JOIN_GREETING, IRC_READ_CHUNK
from ..errors.internal import (
    ConnectionClosedError,
    DialError,
    HandshakeError,
    NetworkError,
    ResolutionError,
)
from ..logs.logger import logger

if TYPE_CHECKING:  # pragma: no cover
    from .session import Session


class HandshakeSequencer:
    """Drives a session from "no connection" to "registered and joined".

    Every step runs once, strictly in order. The first failing step raises
    and the remaining steps are skipped; nothing is retried and channels
    joined before a failure are left joined.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    @property
    def _nick(self) -> str:
        return self.session.config.nick

    async def run(self) -> None:
        config = self.session.config
        address = await self.resolve()
        await self.open(address)
        await self.read_banner()

        logger.log_event("irc", "send_nick", level=logging.DEBUG, user=self._nick)
        await self._send_step("nick", f"NICK {config.nick}")

        logger.log_event("irc", "send_user", level=logging.DEBUG, user=self._nick)
        await self._send_step("user", self.userline())

        await self.read_registration_reply()
        await self.identify()
        await self.join_channels()

    def userline(self) -> str:
        config = self.session.config
        return (
            f"USER {config.user_name} {config.host} "
            f"{config.system_name} {config.real_name}"
        )

    async def resolve(self) -> tuple[str, int]:
        """Resolve ``server:port`` to the first IPv4 stream address."""
        config = self.session.config
        logger.log_event(
            "irc", "connect_start", user=self._nick, endpoint=config.endpoint
        )
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(
                config.server,
                config.port,
                family=socket.AF_INET,
                type=socket.SOCK_STREAM,
            )
        except (OSError, UnicodeError) as e:
            logger.log_event(
                "irc",
                "resolve_failed",
                level=logging.ERROR,
                user=self._nick,
                endpoint=config.endpoint,
                error=str(e),
            )
            raise ResolutionError(
                f"couldn't resolve {config.endpoint}: {e}",
                data={"step": "resolve", "endpoint": config.endpoint},
            ) from e
        if not infos:
            raise ResolutionError(
                f"no IPv4 address for {config.endpoint}",
                data={"step": "resolve", "endpoint": config.endpoint},
            )
        host, port = infos[0][4][:2]
        return host, port

    async def open(self, address: tuple[str, int]) -> None:
        host, port = address
        label = f"{host}:{port}"
        try:
            reader, writer = await asyncio.open_connection(host, port)
        except OSError as e:
            logger.log_event(
                "irc",
                "dial_failed",
                level=logging.ERROR,
                user=self._nick,
                address=label,
                error=str(e),
            )
            raise DialError(
                f"couldn't dial out to {label}: {e}",
                data={"step": "dial", "address": label},
            ) from e
        self.session.attach(reader, writer)
        logger.log_event(
            "irc",
            "connection_established",
            level=logging.DEBUG,
            user=self._nick,
            address=label,
        )

    async def read_banner(self) -> None:
        """Drain whatever greeting the server sent; silence is fine."""
        text = await self._receive_step("banner", block=False)
        logger.log_event(
            "irc", "banner_received", level=logging.DEBUG, user=self._nick, size=len(text)
        )

    async def read_registration_reply(self) -> None:
        text = await self._receive_step("registration", block=True)
        logger.log_event(
            "irc",
            "registration_reply",
            level=logging.DEBUG,
            user=self._nick,
            size=len(text),
        )

    async def identify(self) -> None:
        config = self.session.config
        if not config.password:
            logger.log_event(
                "irc", "identify_skipped", level=logging.DEBUG, user=self._nick
            )
            return
        logger.log_event(
            "irc", "identify", user=self._nick, service=IRC_IDENTIFY_SERVICE
        )
        try:
            await self.session.send_channel_message(
                IRC_IDENTIFY_SERVICE,
                f"IDENTIFY {config.user_name} {config.password}",
            )
        except NetworkError as e:
            raise HandshakeError("identify", f"error identifying: {e}") from e

    async def join_channels(self) -> None:
        for channel in self.session.config.channels:
            logger.log_event("irc", "join", user=self._nick, channel=channel)
            try:
                await self.session.send(f"JOIN {channel}")
            except NetworkError as e:
                logger.log_event(
                    "irc",
                    "join_failed",
                    level=logging.ERROR,
                    user=self._nick,
                    channel=channel,
                    error=str(e),
                )
                raise HandshakeError(
                    "join",
                    f"error joining channel {channel}: {e}",
                    data={"channel": channel},
                ) from e
            try:
                await self.session.send_channel_message(channel, IRC_JOIN_GREETING)
            except NetworkError as e:
                # greeting failures never abort the join sequence
                logger.log_event(
                    "irc",
                    "greeting_failed",
                    level=logging.WARNING,
                    user=self._nick,
                    channel=channel,
                    error=str(e),
                )

    async def _send_step(self, step: str, line: str) -> None:
        try:
            await self.session.send(line)
        except NetworkError as e:
            raise HandshakeError(step, f"error during {step}: {e}") from e

    async def _receive_step(self, step: str, *, block: bool) -> str:
        try:
            text = await self.session.receive(IRC_READ_CHUNK, block=block)
        except NetworkError as e:
            raise HandshakeError(step, f"read error during {step}: {e}") from e
        if self.session.terminated:
            raise HandshakeError(
                step, f"connection closed by server during {step}"
            ) from ConnectionClosedError("end of stream")
        return text
