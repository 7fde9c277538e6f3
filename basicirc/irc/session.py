"""IRC session: one TCP connection, its handshake and its line transport."""

from __future__ import annotations

import asyncio
import logging

from ..config.model import SessionConfig
from ..constants import IRC_READ_ALL, IRC_READ_CHUNK, IRC_READ_TIMEOUT_SECONDS
from ..errors.internal import ConnectionClosedError, InternalError, NetworkError
from ..logs.logger import logger
from .handshake import HandshakeSequencer
from .models import SessionState
from .parser import frame_line, trim_reply
from .probe import ProbeCounter


class Session:
    """A single IRC session built from a validated ``SessionConfig``.

    Lifecycle is ``CREATED -> CONNECTING -> CONNECTED -> TERMINATED``; a
    failed connect goes straight to ``TERMINATED``. A terminated session is
    never reconnected, build a new one instead.

    The session never spawns tasks. Callers run their own receive loop and
    may schedule ``respond_to_probe`` concurrently with it; at most one
    reader and one writer may use the session at a time.
    """

    def __init__(
        self, config: SessionConfig, probe_counter: ProbeCounter | None = None
    ) -> None:
        self.config = config
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.state = SessionState.CREATED
        self.probe_counter = probe_counter or ProbeCounter()
        self.last_error: InternalError | None = None
        self.closed_by_peer = False
        self.handshake = HandshakeSequencer(self)

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    @property
    def terminated(self) -> bool:
        return self.state is SessionState.TERMINATED

    def _set_state(self, new_state: SessionState) -> None:
        if self.state != new_state:
            logger.log_event(
                "irc",
                "state_change",
                level=logging.DEBUG,
                user=self.config.nick,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    def attach(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """Take exclusive ownership of an opened stream pair."""
        self.reader = reader
        self.writer = writer

    async def connect(self) -> bool:
        """Resolve, dial, register and join every configured channel.

        Returns:
            True once registered and joined. False on the first failing step;
            the cause is kept in ``last_error`` and the session is terminated.
        """
        if self.state is not SessionState.CREATED:
            logger.log_event(
                "irc",
                "connect_rejected",
                level=logging.ERROR,
                user=self.config.nick,
                state=self.state.name,
            )
            self.last_error = ConnectionClosedError(
                "session already used", data={"state": self.state.name}
            )
            return False

        self._set_state(SessionState.CONNECTING)
        try:
            await self.handshake.run()
        except InternalError as e:
            self.last_error = e
            logger.log_event(
                "irc",
                "connect_failed",
                level=logging.ERROR,
                user=self.config.nick,
                step=e.data.get("step", "connect"),
                error=str(e),
            )
            await self._close_transport()
            return False

        self._set_state(SessionState.CONNECTED)
        logger.log_event(
            "irc",
            "connect_success",
            user=self.config.nick,
            channels=len(self.config.channels),
        )
        return True

    async def send(self, line: str) -> None:
        """Write ``line`` plus CRLF in a single write.

        Raises:
            ConnectionClosedError: If there is no live connection.
            NetworkError: If the transport reports a write failure.
        """
        writer = self.writer
        if writer is None:
            raise ConnectionClosedError(
                "not connected", data={"state": self.state.name}
            )
        try:
            writer.write(frame_line(line))
            await writer.drain()
        except OSError as e:
            raise NetworkError(f"write failed: {e}") from e

    async def receive(
        self, max_bytes: int = IRC_READ_CHUNK, block: bool = True
    ) -> str:
        """Read once (or until EOF when ``max_bytes`` is 0) and return trimmed text.

        With ``block=False`` the read is bounded by a short deadline; a timeout
        yields whatever arrived before it, possibly ``""``. End of stream
        terminates the session and also yields whatever was read, never an
        error.

        Raises:
            NetworkError: For any other read failure.
        """
        return trim_reply(await self.receive_raw(max_bytes, block))

    async def receive_raw(
        self, max_bytes: int = IRC_READ_CHUNK, block: bool = True
    ) -> str:
        """Same as ``receive`` but keeps line terminators, for line reassembly."""
        reader = self.reader
        if reader is None or self.terminated:
            return ""

        try:
            if max_bytes == IRC_READ_ALL:
                data, at_eof = await self._read_until_eof(reader, block)
            elif block:
                data = await reader.read(max_bytes)
                at_eof = not data
            else:
                data = await asyncio.wait_for(
                    reader.read(max_bytes), timeout=IRC_READ_TIMEOUT_SECONDS
                )
                at_eof = not data
        except TimeoutError as e:
            if block:
                raise NetworkError(f"read failed: {e}") from e
            self._log_read_timeout(0)
            return ""
        except OSError as e:
            logger.log_event(
                "irc",
                "read_error",
                level=logging.ERROR,
                user=self.config.nick,
                error=str(e),
            )
            raise NetworkError(f"read failed: {e}") from e

        if at_eof:
            await self._handle_end_of_stream()
        return data.decode("utf-8", errors="replace")

    async def _read_until_eof(
        self, reader: asyncio.StreamReader, block: bool
    ) -> tuple[bytes, bool]:
        """Read until the peer closes.

        Without ``block`` reading stops at the deadline and the bytes that
        arrived so far are kept. Returns the data and whether EOF was reached.
        """
        if block:
            return await reader.read(-1), True
        buffer = bytearray()
        try:
            async with asyncio.timeout(IRC_READ_TIMEOUT_SECONDS):
                while chunk := await reader.read(IRC_READ_CHUNK):
                    buffer += chunk
        except TimeoutError:
            self._log_read_timeout(len(buffer))
            return bytes(buffer), False
        return bytes(buffer), True

    def _log_read_timeout(self, size: int) -> None:
        logger.log_event(
            "irc", "read_timeout", level=logging.DEBUG, user=self.config.nick, size=size
        )

    async def send_channel_message(self, target: str, body: str) -> None:
        await self.send(f"PRIVMSG {target} :{body}")

    async def reply(self, sender: str, body: str) -> None:
        await self.send_channel_message(sender, body)

    async def respond_to_probe(self, token: str) -> bool:
        """Answer a server PING with ``PONG <token>``.

        Meant to be scheduled as its own task. Exactly one write, no reads.
        Returns False when the write failed (already logged).
        """
        count = self.probe_counter.increment()
        logger.log_event("irc", "pong", user=self.config.nick, count=count, token=token)
        try:
            await self.send(f"PONG {token}")
        except NetworkError as e:
            logger.log_event(
                "irc",
                "pong_failed",
                level=logging.WARNING,
                user=self.config.nick,
                count=count,
                token=token,
                error=str(e),
            )
            return False
        return True

    async def disconnect(self) -> None:
        """Send QUIT and close the connection. Safe to call more than once.

        Raises:
            NetworkError: If QUIT could not be written. The connection is
                closed regardless.
        """
        if self.terminated:
            return
        if self.writer is None:
            await self._close_transport()
            return

        logger.log_event("irc", "disconnect", user=self.config.nick)
        error: NetworkError | None = None
        try:
            await self.send("QUIT")
        except NetworkError as e:
            logger.log_event(
                "irc",
                "disconnect_error",
                level=logging.ERROR,
                user=self.config.nick,
                error=str(e),
            )
            error = e
        await self._close_transport()
        if error is not None:
            raise error

    async def _handle_end_of_stream(self) -> None:
        if self.terminated:
            return
        self.closed_by_peer = True
        logger.log_event("irc", "connection_closed", user=self.config.nick)
        try:
            await self.disconnect()
        except NetworkError:
            # logged by disconnect
            pass

    async def _close_transport(self) -> None:
        writer = self.writer
        self.writer = None
        self.reader = None
        if not self.terminated:
            # Before any await so a read woken by the close sees a local shutdown.
            self._set_state(SessionState.TERMINATED)
            logger.log_event(
                "irc",
                "disconnected",
                level=logging.WARNING,
                user=self.config.nick,
                endpoint=self.config.endpoint,
            )
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            logger.log_event(
                "irc",
                "disconnect_error",
                level=logging.DEBUG,
                user=self.config.nick,
                error=str(e),
            )
