# src/eventsocket/session/inbound.py
"""
Inbound mode: connect out to the switch, authenticate, then hand back a live
Connection whose reader task is already running.

Example:
    conn = await dial("localhost", 8021, "ClueCon")
    await conn.send("events json ALL")
    while True:
        event = await conn.read_event()
        ...
"""

import asyncio
import ssl as ssl_module
from typing import Optional

from ..core.connection import Connection
from ..core.interfaces import HandshakeError
from ..utils.config import Config, ConnectionConfig
from ..utils.logger import ESLLogger, log_function_call

# Configure module logger
logger = ESLLogger().get_logger(__name__)


@log_function_call(level="DEBUG")
async def dial(
    host: str,
    port: int,
    password: str,
    config: Optional[ConnectionConfig] = None,
    ssl: Optional[ssl_module.SSLContext] = None,
) -> Connection:
    """
    Connect to the switch and authenticate.

    Args:
        host: Switch address
        port: Event socket port (usually 8021)
        password: Shared secret
        config: Buffer sizes and channel capacities
        ssl: Optional TLS context for the transport

    Returns:
        An ACTIVE Connection

    Raises:
        HandshakeError: If the stream could not be opened or the banner is missing
        AuthenticationError: If the password is rejected
    """
    config = config or ConnectionConfig()
    log = logger.bind(host=host, port=port)
    log.info("dial_start")
    try:
        reader, writer = await asyncio.open_connection(
            host, port, ssl=ssl, limit=config.read_buffer_size
        )
    except OSError as e:
        log.error("dial_failed", error=str(e))
        raise HandshakeError(f"Cannot connect to {host}:{port}: {e}") from e

    conn = Connection(reader, writer, config)
    await conn.authenticate(password)
    conn.start()
    log.info("dial_complete")
    return conn


async def dial_from_config(
    config: Optional[Config] = None,
    ssl: Optional[ssl_module.SSLContext] = None,
) -> Connection:
    """Dial using the client and connection sections of the loaded configuration"""
    config = config or Config()
    return await dial(
        config.client.host,
        config.client.port,
        config.client.password,
        config=config.connection,
        ssl=ssl,
    )
