import asyncio
import os
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Keep non-blocking reads short so timeout paths don't slow the suite down
os.environ.setdefault("IRC_READ_TIMEOUT_SECONDS", "0.2")

from basicirc.config.model import SessionConfig  # noqa: E402
from basicirc.irc.models import SessionState  # noqa: E402
from basicirc.irc.session import Session  # noqa: E402
from basicirc.logging_config import error_aggregator  # noqa: E402
from tests.fixtures.sample_configs import MINIMAL_CONFIG  # noqa: E402
from tests.fixtures.stub_server import StubIRCServer  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_error_aggregator():
    """Each test starts with an empty error summary."""
    error_aggregator.clear()
    yield
    error_aggregator.clear()


@pytest.fixture
def config() -> SessionConfig:
    return SessionConfig.from_dict(MINIMAL_CONFIG)


def make_writer() -> MagicMock:
    writer = MagicMock()
    writer.write = MagicMock()
    writer.drain = AsyncMock()
    writer.close = MagicMock()
    writer.wait_closed = AsyncMock()
    return writer


@pytest_asyncio.fixture
async def connected_session(config):
    """A session attached to an in-memory reader and a mock writer.

    Yields (session, reader, writer); feed the reader with ``feed_data`` /
    ``feed_eof`` and inspect ``writer.write`` calls.
    """
    session = Session(config)
    reader = asyncio.StreamReader()
    writer = make_writer()
    session.attach(reader, writer)
    session.state = SessionState.CONNECTED
    yield session, reader, writer


@pytest_asyncio.fixture
async def stub_server_factory():
    """Start StubIRCServer instances and stop them after the test."""
    started: list[StubIRCServer] = []

    async def _factory(**kwargs) -> StubIRCServer:
        server = await StubIRCServer(**kwargs).start()
        started.append(server)
        return server

    yield _factory

    for server in started:
        await server.stop()
