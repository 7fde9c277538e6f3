"""Handshake against a loopback stub server."""

import asyncio
import socket
from unittest.mock import AsyncMock

import pytest

from basicirc.config.model import SessionConfig
from basicirc.errors.internal import (
    ConnectionClosedError,
    DialError,
    HandshakeError,
    ResolutionError,
)
from basicirc.irc.models import SessionState
from basicirc.irc.session import Session
from tests.fixtures.sample_configs import MINIMAL_CONFIG
from tests.fixtures.stub_server import config_for


def record_sends(session: Session, monkeypatch) -> list[str]:
    sent: list[str] = []
    real_send = session.send

    async def spy(line: str) -> None:
        sent.append(line)
        await real_send(line)

    monkeypatch.setattr(session, "send", spy)
    return sent


@pytest.mark.asyncio
async def test_full_handshake_order(stub_server_factory):
    server = await stub_server_factory()
    session = Session(config_for(server))

    assert await session.connect() is True
    assert session.state is SessionState.CONNECTED
    assert session.last_error is None

    await session.disconnect()
    await server.wait_done()

    assert server.events[0] == "banner"
    assert server.lines == [
        "NICK x",
        "USER u * testsys GoKyle IRC client",
        "JOIN #a",
        "PRIVMSG #a :hello",
        "JOIN #b",
        "PRIVMSG #b :hello",
        "JOIN #c",
        "PRIVMSG #c :hello",
        "QUIT",
    ]


@pytest.mark.asyncio
async def test_identify_sent_before_joins_when_password_set(stub_server_factory):
    server = await stub_server_factory()
    session = Session(config_for(server, password="p", channels=["#a"]))

    assert await session.connect() is True
    await session.disconnect()
    await server.wait_done()

    assert server.lines[:4] == [
        "NICK x",
        "USER u * testsys GoKyle IRC client",
        "PRIVMSG NickServ :IDENTIFY u p",
        "JOIN #a",
    ]


@pytest.mark.asyncio
async def test_no_identify_without_password(stub_server_factory):
    server = await stub_server_factory()
    session = Session(config_for(server, password=""))

    assert await session.connect() is True
    await session.disconnect()
    await server.wait_done()

    assert not any("NickServ" in line for line in server.lines)


@pytest.mark.asyncio
async def test_custom_user_line_fields(stub_server_factory):
    server = await stub_server_factory()
    session = Session(
        config_for(server, real="Kyle Bot", host="localhost", channels=["#a"])
    )

    assert await session.connect() is True
    await session.disconnect()
    await server.wait_done()

    assert server.lines[1] == "USER u localhost testsys Kyle Bot"


@pytest.mark.asyncio
async def test_close_after_banner_fails_without_join(stub_server_factory, monkeypatch):
    server = await stub_server_factory(close_after_banner=True)
    session = Session(config_for(server))
    sent = record_sends(session, monkeypatch)

    assert await session.connect() is False
    assert session.terminated
    assert isinstance(session.last_error, HandshakeError)
    assert not any(line.startswith("JOIN") for line in sent)
    assert session.writer is None


@pytest.mark.asyncio
async def test_silent_server_banner_is_tolerated(stub_server_factory):
    server = await stub_server_factory(banner="")
    session = Session(config_for(server, channels=["#a"]))

    assert await session.connect() is True
    await session.disconnect()


@pytest.mark.asyncio
async def test_resolution_failure(monkeypatch):
    loop = asyncio.get_running_loop()
    monkeypatch.setattr(
        loop,
        "getaddrinfo",
        AsyncMock(side_effect=socket.gaierror(socket.EAI_NONAME, "Name or service not known")),
    )
    session = Session(SessionConfig.from_dict({**MINIMAL_CONFIG, "server": "nowhere.invalid"}))

    assert await session.connect() is False
    assert isinstance(session.last_error, ResolutionError)
    assert session.last_error.data["step"] == "resolve"
    assert session.terminated


@pytest.mark.asyncio
async def test_empty_resolution_result(monkeypatch):
    loop = asyncio.get_running_loop()
    monkeypatch.setattr(loop, "getaddrinfo", AsyncMock(return_value=[]))
    session = Session(SessionConfig.from_dict(MINIMAL_CONFIG))

    assert await session.connect() is False
    assert isinstance(session.last_error, ResolutionError)


@pytest.mark.asyncio
async def test_dial_failure(monkeypatch):
    monkeypatch.setattr(
        asyncio, "open_connection", AsyncMock(side_effect=ConnectionRefusedError("refused"))
    )
    session = Session(SessionConfig.from_dict({**MINIMAL_CONFIG, "server": "127.0.0.1"}))

    assert await session.connect() is False
    assert isinstance(session.last_error, DialError)
    assert session.last_error.data["step"] == "dial"
    assert session.writer is None


@pytest.mark.asyncio
async def test_session_cannot_connect_twice(stub_server_factory):
    server = await stub_server_factory()
    session = Session(config_for(server, channels=["#a"]))
    assert await session.connect() is True

    assert await session.connect() is False
    assert isinstance(session.last_error, ConnectionClosedError)
    assert session.connected

    await session.disconnect()
    assert await session.connect() is False
    assert session.terminated


@pytest.mark.asyncio
async def test_identify_failure_is_handshake_error(config):
    session = Session(config.model_copy(update={"password": "p"}))
    with pytest.raises(HandshakeError) as exc_info:
        await session.handshake.identify()
    assert exc_info.value.step == "identify"


@pytest.mark.asyncio
async def test_identify_message_format(config, monkeypatch):
    session = Session(config.model_copy(update={"password": "secret"}))
    send = AsyncMock()
    monkeypatch.setattr(session, "send", send)
    await session.handshake.identify()
    send.assert_awaited_once_with("PRIVMSG NickServ :IDENTIFY testuser secret")


@pytest.mark.asyncio
async def test_greeting_failure_does_not_abort_joins(config, monkeypatch):
    session = Session(config.model_copy(update={"channels": ["#a", "#b"]}))
    sent: list[str] = []

    async def send(line: str) -> None:
        sent.append(line)
        if line.startswith("PRIVMSG"):
            raise ConnectionClosedError("greeting dropped")

    monkeypatch.setattr(session, "send", send)
    await session.handshake.join_channels()
    assert sent == ["JOIN #a", "PRIVMSG #a :hello", "JOIN #b", "PRIVMSG #b :hello"]


@pytest.mark.asyncio
async def test_join_failure_stops_sequence(config, monkeypatch):
    session = Session(config.model_copy(update={"channels": ["#a", "#b"]}))
    sent: list[str] = []

    async def send(line: str) -> None:
        sent.append(line)
        raise ConnectionClosedError("gone")

    monkeypatch.setattr(session, "send", send)
    with pytest.raises(HandshakeError) as exc_info:
        await session.handshake.join_channels()
    assert exc_info.value.step == "join"
    assert exc_info.value.data["channel"] == "#a"
    assert sent == ["JOIN #a"]
