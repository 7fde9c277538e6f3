from unittest.mock import AsyncMock

import pytest

from basicirc.errors.internal import DialError, NetworkError
from basicirc.irc.connection import ReconnectController, SessionOutcome
from basicirc.irc.models import SessionState
from basicirc.irc.probe import ProbeCounter


class FakeSession:
    """Scripted stand-in for Session used by the reconnect runner."""

    def __init__(
        self,
        config,
        probe_counter=None,
        *,
        connect_ok=True,
        closed_by_peer=False,
        listen_error=False,
    ):
        self.config = config
        self.probe_counter = probe_counter or ProbeCounter()
        self.connect_ok = connect_ok
        self.closed_by_peer = closed_by_peer
        self.listen_error = listen_error
        self.state = SessionState.CREATED
        self.last_error = None
        self.disconnect_calls = 0

    @property
    def connected(self):
        return self.state is SessionState.CONNECTED

    @property
    def terminated(self):
        return self.state is SessionState.TERMINATED

    async def connect(self):
        if not self.connect_ok:
            self.last_error = DialError("couldn't dial out", data={"step": "dial"})
            self.state = SessionState.TERMINATED
            return False
        self.state = SessionState.CONNECTED
        return True

    async def receive_raw(self, max_bytes=4096, block=True):
        if self.listen_error:
            raise NetworkError("read failed")
        self.probe_counter.increment()
        self.state = SessionState.TERMINATED
        return ""

    async def disconnect(self):
        self.disconnect_calls += 1
        self.state = SessionState.TERMINATED


def scripted_factory(*scripts):
    created: list[FakeSession] = []
    pending = list(scripts)

    def factory(config, probe_counter=None):
        session = FakeSession(config, probe_counter, **pending.pop(0))
        created.append(session)
        return session

    return factory, created


def make_config(config, reconnect):
    return config.model_copy(update={"reconnect": reconnect})


@pytest.mark.asyncio
async def test_without_reconnect_runs_one_session(config):
    factory, created = scripted_factory({"connect_ok": False})
    sleep = AsyncMock()
    controller = ReconnectController(
        make_config(config, False), session_factory=factory, sleep=sleep
    )

    assert await controller.run() is SessionOutcome.CONNECT_FAILED
    assert controller.attempts == 1
    assert len(created) == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_without_reconnect_lost_is_not_retried(config):
    factory, _ = scripted_factory({"closed_by_peer": True})
    controller = ReconnectController(
        make_config(config, False), session_factory=factory, sleep=AsyncMock()
    )
    assert await controller.run() is SessionOutcome.LOST
    assert controller.attempts == 1


@pytest.mark.asyncio
async def test_reconnect_gives_up_after_max_attempts(config):
    factory, created = scripted_factory(*({"connect_ok": False},) * 3)
    sleep = AsyncMock()
    controller = ReconnectController(
        make_config(config, True), max_attempts=3, session_factory=factory, sleep=sleep
    )

    assert await controller.run() is SessionOutcome.CONNECT_FAILED
    assert controller.attempts == 3
    assert len(created) == 3
    assert sleep.await_count == 2
    # every attempt used a fresh session
    assert len({id(s) for s in created}) == 3


@pytest.mark.asyncio
async def test_backoff_grows_between_attempts(config):
    factory, _ = scripted_factory(*({"connect_ok": False},) * 4)
    sleep = AsyncMock()
    controller = ReconnectController(
        make_config(config, True), max_attempts=4, session_factory=factory, sleep=sleep
    )
    await controller.run()

    delays = [c.args[0] for c in sleep.await_args_list]
    assert len(delays) == 3
    assert delays == sorted(delays)
    assert delays[0] > 0


@pytest.mark.asyncio
async def test_reconnect_stops_after_local_close(config):
    factory, created = scripted_factory({"connect_ok": False}, {"closed_by_peer": False})
    sleep = AsyncMock()
    controller = ReconnectController(
        make_config(config, True), max_attempts=5, session_factory=factory, sleep=sleep
    )

    assert await controller.run() is SessionOutcome.CLOSED
    assert controller.attempts == 2
    assert sleep.await_count == 1


@pytest.mark.asyncio
async def test_lost_sessions_are_replaced_and_share_probe_counter(config):
    factory, created = scripted_factory(
        {"closed_by_peer": True}, {"listen_error": True}, {"closed_by_peer": False}
    )
    controller = ReconnectController(
        make_config(config, True), max_attempts=5, session_factory=factory, sleep=AsyncMock()
    )

    assert await controller.run() is SessionOutcome.CLOSED
    assert controller.attempts == 3
    assert all(s.probe_counter is controller.probe_counter for s in created)
    assert controller.probe_counter.value == 2


@pytest.mark.asyncio
async def test_read_failure_closes_session(config):
    factory, created = scripted_factory({"listen_error": True})
    controller = ReconnectController(
        make_config(config, False), session_factory=factory, sleep=AsyncMock()
    )

    assert await controller.run() is SessionOutcome.LOST
    assert created[0].disconnect_calls == 1
    assert created[0].terminated


@pytest.mark.asyncio
async def test_stop_disconnects_active_session(config):
    factory, created = scripted_factory({})
    controller = ReconnectController(
        make_config(config, False), session_factory=factory, sleep=AsyncMock()
    )
    await controller.stop()
    assert created == []

    controller.session = factory(config)
    await controller.stop()
    assert created[0].disconnect_calls == 1
