# src/eventsocket/session/outbound.py
"""
Outbound mode: accept connections from the switch, one per controlled call,
and run a caller-supplied handler on each live Connection.

Example:
    async def handler(conn):
        await conn.send("connect")
        await conn.send("myevents")
        await conn.execute("answer")
        await conn.execute("playback", "/tmp/test.wav", lock=True)
        while True:
            event = await conn.read_event()
            ...

    await listen_and_serve(handler, port=9090)
"""

import asyncio
from typing import Awaitable, Callable, Optional

from ..core.connection import Connection
from ..core.interfaces import EventSocketError
from ..utils.config import Config, ConnectionConfig
from ..utils.logger import ESLLogger, log_function_call

# Configure module logger
logger = ESLLogger().get_logger(__name__)

HandleFunc = Callable[[Connection], Awaitable[None]]


async def _handle_client(
    handler: HandleFunc,
    config: ConnectionConfig,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
) -> None:
    """Run the handler on one accepted stream and close the connection afterwards"""
    conn = Connection(reader, writer, config)
    conn.start()
    log = conn.log.bind(handler=getattr(handler, "__qualname__", repr(handler)))
    log.info("outbound_connection_accepted")
    try:
        await handler(conn)
    except EventSocketError as e:
        log.warning("handler_connection_error", error=str(e), error_type=type(e).__name__)
    except Exception as e:
        log.error("handler_failed", error=str(e), exc_info=True)
    finally:
        await conn.close()
        log.info("outbound_connection_done")


@log_function_call(level="DEBUG")
async def serve(
    handler: HandleFunc,
    host: Optional[str] = None,
    port: int = 9090,
    config: Optional[ConnectionConfig] = None,
) -> asyncio.AbstractServer:
    """
    Start accepting connections from the switch.

    Each accepted stream gets its own Connection (reader task already
    running) and its own handler invocation.

    Returns:
        The listening server; close it to stop accepting
    """
    config = config or ConnectionConfig()

    async def on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        await _handle_client(handler, config, reader, writer)

    server = await asyncio.start_server(
        on_connect, host, port, limit=config.read_buffer_size
    )
    addresses = [str(sock.getsockname()) for sock in server.sockets or ()]
    logger.info("outbound_listening", addresses=addresses)
    return server


async def listen_and_serve(
    handler: HandleFunc,
    host: Optional[str] = None,
    port: int = 9090,
    config: Optional[ConnectionConfig] = None,
) -> None:
    """Serve outbound connections until cancelled"""
    server = await serve(handler, host, port, config)
    async with server:
        await server.serve_forever()


async def serve_from_config(handler: HandleFunc, config: Optional[Config] = None) -> asyncio.AbstractServer:
    """Start the listener using the server and connection sections of the loaded configuration"""
    config = config or Config()
    return await serve(handler, config.server.host, config.server.port, config.connection)
