# src/eventsocket/core/framing.py
"""
Wire framing for the Event Socket protocol.
A frame is a block of "Name: value" lines terminated by a blank line, followed
by an optional body whose size in bytes is given by the Content-Length header.
This module is the only code that reads raw bytes from a stream.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .interfaces import ConnectionClosedError, FramingError

CONTENT_LENGTH = "content-length"


@dataclass
class Frame:
    """One parsed header block plus its raw body"""
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    def get(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup; the first occurrence wins"""
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return default

    @property
    def content_type(self) -> str:
        return self.get("Content-Type").strip()

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def frame_reader(data: bytes, limit: Optional[int] = None) -> asyncio.StreamReader:
    """Build a reader scoped to a byte string, used to re-parse nested frames"""
    reader = asyncio.StreamReader(limit=limit) if limit else asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


async def read_header_block(reader: asyncio.StreamReader) -> List[Tuple[str, str]]:
    """
    Read header lines up to and including the terminating blank line.

    Raises:
        ConnectionClosedError: If the stream ends before the blank line
        FramingError: If a line is malformed or longer than the reader limit
    """
    headers: List[Tuple[str, str]] = []
    while True:
        try:
            raw = await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            raise ConnectionClosedError(
                "stream closed while reading header block"
            ) from e
        except asyncio.LimitOverrunError as e:
            raise FramingError("header line exceeds read buffer size") from e

        line = raw.rstrip(b"\r\n").decode("utf-8", errors="replace")
        if not line:
            return headers
        if line[0] in " \t":
            raise FramingError(f"malformed header line: {line!r}")
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key or any(c.isspace() for c in key):
            raise FramingError(f"malformed header line: {line!r}")
        headers.append((key, value.strip(" \t")))


def parse_content_length(value: str) -> int:
    """
    Parse a Content-Length value; empty means no body.

    Raises:
        FramingError: If the value is not a non-negative integer
    """
    value = value.strip()
    if not value:
        return 0
    if not (value.isascii() and value.isdigit()):
        raise FramingError(f"invalid Content-Length: {value!r}")
    return int(value)


async def read_frame(reader: asyncio.StreamReader) -> Frame:
    """
    Read one frame: header block plus Content-Length bytes of body.

    Raises:
        ConnectionClosedError: If the stream closes mid-frame
        FramingError: If the header block or Content-Length is malformed
    """
    frame = Frame(headers=await read_header_block(reader))
    length = parse_content_length(frame.get(CONTENT_LENGTH))
    if length:
        try:
            frame.body = await reader.readexactly(length)
        except asyncio.IncompleteReadError as e:
            raise ConnectionClosedError(
                f"stream closed after {len(e.partial)} of {length} body bytes"
            ) from e
    return frame
