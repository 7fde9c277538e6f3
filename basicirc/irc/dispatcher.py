"""Receive loop and inbound line dispatch."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ..constants import IRC_READ_CHUNK, PROBE_TASK_SHUTDOWN_TIMEOUT_SECONDS
from ..logs.logger import logger
from .models import ChannelMessage, InboundLine, ProbeLine
from .parser import classify_line, split_complete_lines

if TYPE_CHECKING:  # pragma: no cover
    from .session import Session

MessageHandler = Callable[["Session", ChannelMessage], Awaitable[None] | None]


class LineDispatcher:
    """Pulls text from a connected session and routes each line.

    Probes are answered on their own task so a slow PONG never holds up the
    next read. Channel messages go to the optional handler; anything else is
    only logged at debug level. A line split across reads is held back
    until its terminator arrives.
    """

    def __init__(
        self, session: Session, message_handler: MessageHandler | None = None
    ) -> None:
        self.session = session
        self.message_handler = message_handler
        self._probe_tasks: set[asyncio.Task[bool]] = set()
        # Unterminated tail of the last chunk
        self._buffer = ""

    @property
    def pending_probes(self) -> int:
        return len(self._probe_tasks)

    async def run(self) -> None:
        """Loop until the session terminates.

        Raises:
            NetworkError: When a read fails; the caller decides what to do
                with the session.
        """
        nick = self.session.config.nick
        logger.log_event("irc", "listen_start", level=logging.DEBUG, user=nick)
        try:
            while self.session.connected:
                text = await self.session.receive_raw(IRC_READ_CHUNK, block=True)
                if text:
                    await self.process_text(text)
        finally:
            await self._drain_probe_tasks()
            if self._buffer:
                logger.log_event(
                    "irc",
                    "partial_line_dropped",
                    level=logging.DEBUG,
                    user=nick,
                    raw=self._buffer,
                )
            logger.log_event("irc", "listen_end", level=logging.DEBUG, user=nick)

    async def process_text(self, text: str) -> None:
        """Dispatch every line completed by ``text``; keep the rest for later."""
        lines, self._buffer = split_complete_lines(self._buffer + text)
        for line in lines:
            await self.dispatch(classify_line(line))

    async def dispatch(self, inbound: InboundLine) -> None:
        if isinstance(inbound, ProbeLine):
            self._schedule_probe(inbound.token)
        elif isinstance(inbound, ChannelMessage):
            logger.log_event(
                "irc",
                "privmsg",
                level=logging.DEBUG,
                user=self.session.config.nick,
                channel=inbound.target,
                sender=inbound.sender,
                body=inbound.body,
            )
            await self._invoke_handler(inbound)
        else:
            logger.log_event(
                "irc",
                "raw",
                level=logging.DEBUG,
                user=self.session.config.nick,
                raw=inbound.raw,
            )

    def _schedule_probe(self, token: str) -> None:
        task = asyncio.create_task(self.session.respond_to_probe(token))
        self._probe_tasks.add(task)
        task.add_done_callback(self._probe_tasks.discard)

    async def _invoke_handler(self, message: ChannelMessage) -> None:
        handler = self.message_handler
        if handler is None:
            return
        try:
            result = handler(self.session, message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "message_handler_error",
                level=logging.ERROR,
                user=self.session.config.nick,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def _drain_probe_tasks(self) -> None:
        if not self._probe_tasks:
            return
        _, pending = await asyncio.wait(
            set(self._probe_tasks), timeout=PROBE_TASK_SHUTDOWN_TIMEOUT_SECONDS
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
