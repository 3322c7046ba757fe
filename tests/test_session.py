"""Tests for the inbound (dial) and outbound (serve) lifecycles over loopback sockets."""

import asyncio

import pytest

from eventsocket.core.interfaces import (
    AuthenticationError,
    ConnectionState,
    HandshakeError,
)
from eventsocket.session.inbound import dial, dial_from_config
from eventsocket.session.outbound import serve, serve_from_config
from eventsocket.utils.config import Config

AUTH_REQUEST = b"Content-Type: auth/request\n\n"


async def start_switch(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    return server, server.sockets[0].getsockname()[1]


async def stop(server):
    server.close()
    await server.wait_closed()


def fake_switch(received, auth_reply=b"+OK accepted"):
    async def handle(reader, writer):
        writer.write(AUTH_REQUEST)
        await writer.drain()
        try:
            received.append(await reader.readuntil(b"\r\n\r\n"))
            writer.write(b"Content-Type: command/reply\nReply-Text: " + auth_reply + b"\n\n")
            await writer.drain()
            received.append(await reader.readuntil(b"\r\n\r\n"))
            writer.write(b"Content-Type: command/reply\nReply-Text: +OK event listener enabled json\n\n")
            await writer.drain()
            await reader.read()
        except (asyncio.IncompleteReadError, ConnectionResetError):
            pass
        writer.close()
    return handle


def test_dial_authenticates_and_starts_reader():
    async def run():
        received = []
        server, port = await start_switch(fake_switch(received))
        conn = await asyncio.wait_for(dial("127.0.0.1", port, "ClueCon"), 2)
        assert conn.state is ConnectionState.ACTIVE
        reply = await asyncio.wait_for(conn.send("events json ALL"), 2)
        assert reply.get("Reply-Text") == "+OK event listener enabled json"
        assert received == [b"auth ClueCon\r\n\r\n", b"events json ALL\r\n\r\n"]
        await conn.close()
        await stop(server)

    asyncio.run(run())


def test_dial_rejected_password():
    async def run():
        received = []
        server, port = await start_switch(fake_switch(received, auth_reply=b"-ERR invalid"))
        with pytest.raises(AuthenticationError):
            await asyncio.wait_for(dial("127.0.0.1", port, "wrong"), 2)
        await stop(server)

    asyncio.run(run())


def test_dial_missing_auth_request():
    async def run():
        async def handle(reader, writer):
            writer.write(b"Content-Type: text/disconnect-notice\n\n")
            await writer.drain()
            await reader.read()
            writer.close()

        server, port = await start_switch(handle)
        with pytest.raises(HandshakeError) as exc:
            await asyncio.wait_for(dial("127.0.0.1", port, "ClueCon"), 2)
        assert not isinstance(exc.value, AuthenticationError)
        await stop(server)

    asyncio.run(run())


def test_dial_stream_closed_mid_handshake():
    async def run():
        async def handle(reader, writer):
            writer.write(b"Content-Type: auth/")
            await writer.drain()
            writer.close()

        server, port = await start_switch(handle)
        with pytest.raises(HandshakeError):
            await asyncio.wait_for(dial("127.0.0.1", port, "ClueCon"), 2)
        await stop(server)

    asyncio.run(run())


def test_dial_rejects_password_with_line_break():
    async def run():
        received = []
        server, port = await start_switch(fake_switch(received))
        with pytest.raises(HandshakeError):
            await asyncio.wait_for(dial("127.0.0.1", port, "Clue\r\nCon"), 2)
        assert received == []
        await stop(server)

    asyncio.run(run())


def test_dial_connection_refused():
    async def run():
        server, port = await start_switch(lambda r, w: None)
        await stop(server)
        with pytest.raises(HandshakeError):
            await asyncio.wait_for(dial("127.0.0.1", port, "ClueCon"), 2)

    asyncio.run(run())


def test_dial_from_config(monkeypatch):
    async def run(port):
        monkeypatch.setenv("ESL_HOST", "127.0.0.1")
        monkeypatch.setenv("ESL_PORT", str(port))
        monkeypatch.setenv("ESL_PASSWORD", "s3cret")
        config = Config()
        config.load()
        conn = await asyncio.wait_for(dial_from_config(config), 2)
        assert conn.config.events_buffer == config.connection.events_buffer
        await conn.close()

    async def main():
        received = []
        server, port = await start_switch(fake_switch(received))
        await run(port)
        assert received[0] == b"auth s3cret\r\n\r\n"
        await stop(server)

    asyncio.run(main())


def test_serve_runs_handler_per_connection():
    async def run():
        replies = asyncio.Queue()

        async def handler(conn):
            assert conn.state is ConnectionState.ACTIVE
            reply = await conn.send("connect")
            await replies.put(reply)

        server = await serve(handler, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]

        for unique_id in (b"leg-a", b"leg-b"):
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            assert await asyncio.wait_for(reader.readuntil(b"\r\n\r\n"), 2) == b"connect\r\n\r\n"
            writer.write(b"Content-Type: command/reply\nReply-Text: +OK\nChannel-Unique-ID: " + unique_id + b"\n\n")
            await writer.drain()
            reply = await asyncio.wait_for(replies.get(), 2)
            assert reply.get("Channel-Unique-Id") == unique_id.decode()
            # the connection is closed once the handler returns
            assert await asyncio.wait_for(reader.read(), 2) == b""
            writer.close()

        await stop(server)

    asyncio.run(run())


def test_serve_survives_failing_handler():
    async def run():
        calls = []

        async def handler(conn):
            calls.append(conn.remote_addr)
            if len(calls) == 1:
                raise RuntimeError("handler bug")
            await conn.send("connect")

        server = await serve(handler, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]

        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        assert await asyncio.wait_for(reader.read(), 2) == b""
        writer.close()

        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        assert await asyncio.wait_for(reader.readuntil(b"\r\n\r\n"), 2) == b"connect\r\n\r\n"
        writer.write(b"Content-Type: command/reply\nReply-Text: +OK\n\n")
        await writer.drain()
        assert await asyncio.wait_for(reader.read(), 2) == b""
        writer.close()

        assert len(calls) == 2
        await stop(server)

    asyncio.run(run())


def test_serve_from_config(monkeypatch):
    async def run():
        monkeypatch.setenv("ESL_LISTEN_HOST", "127.0.0.1")
        monkeypatch.setenv("ESL_LISTEN_PORT", "0")
        config = Config()
        config.load()

        async def handler(conn):
            await conn.send("connect")

        server = await serve_from_config(handler, config)
        assert server.sockets[0].getsockname()[0] == "127.0.0.1"
        await stop(server)

    asyncio.run(run())
