"""
pytest configuration and fixtures.
"""

import asyncio
import json
from typing import Callable, Dict, Optional, Tuple

import pytest

from eventsocket.core.connection import Connection
from eventsocket.utils.config import ConnectionConfig


class FakeWriter:
    """In-memory stand-in for asyncio.StreamWriter"""

    def __init__(self, peername=("127.0.0.1", 40000)):
        self.data = bytearray()
        self.closed = False
        self.writes = 0
        self._peername = peername

    def write(self, data: bytes) -> None:
        if self.closed:
            raise ConnectionResetError("writer closed")
        self.writes += 1
        self.data.extend(data)

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass

    def is_closing(self) -> bool:
        return self.closed

    def get_extra_info(self, name, default=None):
        if name == "peername":
            return self._peername
        return default


def build_frame(headers: Dict[str, str], body: bytes = b"") -> bytes:
    """Serialize a frame the way the switch does (LF line endings)"""
    lines = [f"{key}: {value}" for key, value in headers.items()]
    if body:
        lines.append(f"Content-Length: {len(body)}")
    return ("\n".join(lines) + "\n\n").encode("utf-8") + body


def json_event(name: str, **extra) -> bytes:
    body = json.dumps({"Event-Name": name, **extra}).encode("utf-8")
    return build_frame({"Content-Type": "text/event-json"}, body)


def command_reply(reply_text: str, **extra) -> bytes:
    headers = {"Content-Type": "command/reply", "Reply-Text": reply_text}
    headers.update(extra)
    return build_frame(headers)


@pytest.fixture
def frame() -> Callable[..., bytes]:
    return build_frame


@pytest.fixture
def event_frame() -> Callable[..., bytes]:
    return json_event


@pytest.fixture
def reply_frame() -> Callable[..., bytes]:
    return command_reply


@pytest.fixture
def stream_reader() -> Callable[[bytes], asyncio.StreamReader]:
    """Factory for a reader pre-loaded with bytes and closed (call inside a loop)"""
    def make(data: bytes, limit: Optional[int] = None) -> asyncio.StreamReader:
        reader = asyncio.StreamReader(limit=limit) if limit else asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        return reader
    return make


@pytest.fixture
def make_connection() -> Callable[..., Tuple[Connection, asyncio.StreamReader, FakeWriter]]:
    """Factory for a Connection over a feedable reader and an in-memory writer (call inside a loop)"""
    def make(config: Optional[ConnectionConfig] = None):
        reader = asyncio.StreamReader()
        writer = FakeWriter()
        return Connection(reader, writer, config), reader, writer
    return make
