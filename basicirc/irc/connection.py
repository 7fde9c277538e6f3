"""Session runner and reconnect policy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum, auto

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from ..config.model import SessionConfig
from ..constants import (
    INITIAL_BACKOFF_SECONDS,
    MAX_BACKOFF_SECONDS,
    RECONNECT_MAX_ATTEMPTS,
)
from ..errors.handling import log_error
from ..errors.internal import NetworkError
from ..logs.logger import logger
from .dispatcher import LineDispatcher, MessageHandler
from .probe import ProbeCounter
from .session import Session


class SessionOutcome(Enum):
    CONNECT_FAILED = auto()
    LOST = auto()
    CLOSED = auto()


class ReconnectController:
    """Runs sessions for one configuration.

    Without the ``reconnect`` flag exactly one session is run. With it, a
    session that fails to connect or loses its connection is replaced by a
    brand new session after an exponential backoff, up to ``max_attempts``
    sessions in total. A session closed locally is never replaced.

    All sessions share one ``ProbeCounter`` so PONG numbering continues
    across reconnects.
    """

    def __init__(
        self,
        config: SessionConfig,
        message_handler: MessageHandler | None = None,
        *,
        max_attempts: int = RECONNECT_MAX_ATTEMPTS,
        session_factory: Callable[..., Session] = Session,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.message_handler = message_handler
        self.max_attempts = max(1, max_attempts)
        self.session_factory = session_factory
        self.probe_counter = ProbeCounter()
        self.session: Session | None = None
        self.attempts = 0
        self._sleep = sleep

    async def run(self) -> SessionOutcome:
        if not self.config.reconnect:
            outcome = await self.run_session()
            if outcome is not SessionOutcome.CLOSED:
                logger.log_event(
                    "irc",
                    "reconnect_disabled",
                    level=logging.DEBUG,
                    user=self.config.nick,
                )
            return outcome

        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=INITIAL_BACKOFF_SECONDS, max=MAX_BACKOFF_SECONDS
            ),
            retry=retry_if_result(lambda outcome: outcome is not SessionOutcome.CLOSED),
            before_sleep=self._log_backoff,
            retry_error_callback=self._give_up,
        )
        return await retrying(self.run_session)

    async def run_session(self) -> SessionOutcome:
        """Connect one new session and pump it until it terminates."""
        self.attempts += 1
        session = self.session_factory(self.config, probe_counter=self.probe_counter)
        self.session = session
        try:
            if not await session.connect():
                if session.last_error is not None:
                    log_error("Connect failed", session.last_error)
                return SessionOutcome.CONNECT_FAILED

            dispatcher = LineDispatcher(session, self.message_handler)
            try:
                await dispatcher.run()
            except NetworkError as e:
                logger.log_event(
                    "irc",
                    "listen_error",
                    level=logging.ERROR,
                    user=self.config.nick,
                    error=str(e),
                )
                return SessionOutcome.LOST
            return SessionOutcome.LOST if session.closed_by_peer else SessionOutcome.CLOSED
        finally:
            await self._close_quietly(session)

    async def stop(self) -> None:
        """Close the active session; the runner then reports CLOSED."""
        if self.session is not None:
            await self.session.disconnect()

    def _log_backoff(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.log_event(
            "irc",
            "reconnect_wait",
            level=logging.WARNING,
            user=self.config.nick,
            delay=delay,
            attempt=retry_state.attempt_number + 1,
            max_attempts=self.max_attempts,
        )

    def _give_up(self, retry_state: RetryCallState) -> SessionOutcome:
        logger.log_event(
            "irc",
            "reconnect_exhausted",
            level=logging.ERROR,
            user=self.config.nick,
            attempts=retry_state.attempt_number,
        )
        return retry_state.outcome.result()

    @staticmethod
    async def _close_quietly(session: Session) -> None:
        if session.terminated:
            return
        try:
            await session.disconnect()
        except NetworkError:
            # disconnect already logged the failed QUIT
            pass
