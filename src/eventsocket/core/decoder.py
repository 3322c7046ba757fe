# src/eventsocket/core/decoder.py
"""
Event decoder.
Turns one parsed frame into an Event, dispatching on its Content-Type:
command and api replies, plain-text events (whose body is itself a full
frame), JSON events and disconnect notices. Error replies (-ERR ...) are
raised as recoverable ProtocolErrors; anything the decoder cannot trust is
raised as a fatal error.
"""

import json
from typing import Any, Dict

from .framing import Frame, frame_reader, read_frame
from .headers import copy_headers, normalize_key
from .interfaces import (
    ConnectionClosedError,
    ContentType,
    EventKind,
    FramingError,
    ProtocolError,
    UnsupportedContentTypeError,
)
from .models import Event

# "-ERR " precedes the message of every error reply
ERROR_MARKER = "-E"
ERROR_PREFIX_LENGTH = 5

BODY_KEY = "_body"


def _error_reply(text: str) -> ProtocolError:
    return ProtocolError(text[ERROR_PREFIX_LENGTH:], reply_text=text)


def _decode_command_reply(frame: Frame) -> Event:
    reply = frame.get("Reply-Text")
    if not reply:
        raise ProtocolError("command reply without Reply-Text", reply_text="")
    if reply.startswith(ERROR_MARKER):
        raise _error_reply(reply)
    return Event(
        kind=EventKind.COMMAND_REPLY,
        header=copy_headers(frame.headers, decode=reply[0] == "%"),
        body=frame.text,
    )


def _decode_api_response(frame: Frame) -> Event:
    body = frame.text
    if body.startswith(ERROR_MARKER):
        raise _error_reply(body)
    return Event(
        kind=EventKind.API_REPLY,
        header=copy_headers(frame.headers, decode=False),
        body=body,
    )


async def _decode_event_plain(frame: Frame) -> Event:
    try:
        inner = await read_frame(frame_reader(frame.body, limit=len(frame.body) + 1))
    except ConnectionClosedError as e:
        raise FramingError(f"truncated text/event-plain body: {e}") from e
    return Event(
        kind=EventKind.ASYNC_EVENT,
        header=copy_headers(inner.headers, decode=True),
        body=inner.text,
    )


def _header_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value)


def _body_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return json.dumps(value)
    return ""


def _decode_event_json(frame: Frame) -> Event:
    try:
        data = json.loads(frame.text) if frame.body else {}
    except (ValueError, RecursionError) as e:
        raise FramingError(f"invalid text/event-json body: {e}") from e
    if not isinstance(data, dict):
        raise FramingError("text/event-json body is not an object")

    header: Dict[str, str] = {}
    body = ""
    for key, value in data.items():
        key = normalize_key(key)
        if key == BODY_KEY:
            body = _body_text(value)
        elif key not in header:
            header[key] = _header_text(value)
    return Event(kind=EventKind.ASYNC_EVENT, header=header, body=body)


def _decode_disconnect_notice(frame: Frame) -> Event:
    return Event(
        kind=EventKind.ASYNC_EVENT,
        header=copy_headers(frame.headers, decode=False),
        body=frame.text,
    )


async def decode_frame(frame: Frame) -> Event:
    """
    Decode a frame into an Event.

    Raises:
        ProtocolError: For -ERR replies (recoverable)
        UnsupportedContentTypeError: For unknown Content-Types (fatal)
        FramingError: For undecodable event bodies (fatal)
    """
    content_type = frame.content_type
    if content_type == ContentType.COMMAND_REPLY.value:
        return _decode_command_reply(frame)
    if content_type == ContentType.API_RESPONSE.value:
        return _decode_api_response(frame)
    if content_type == ContentType.EVENT_PLAIN.value:
        return await _decode_event_plain(frame)
    if content_type == ContentType.EVENT_JSON.value:
        return _decode_event_json(frame)
    if content_type == ContentType.DISCONNECT_NOTICE.value:
        return _decode_disconnect_notice(frame)
    raise UnsupportedContentTypeError(content_type)
