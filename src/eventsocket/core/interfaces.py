# src/eventsocket/core/interfaces.py
"""
Core interfaces and types for Event Socket communication.
Defines the enums and exceptions shared by the frame parser, the event decoder,
the connection engine and the inbound/outbound session helpers.
"""

from enum import Enum, IntEnum
from typing import Optional


class EventSocketError(Exception):
    """Base exception for all Event Socket errors"""
    fatal = False


class TransportError(EventSocketError):
    """Stream read or write failure; the connection is torn down"""
    fatal = True


class ConnectionClosedError(TransportError):
    """The stream closed, or an operation was attempted on a closed connection"""
    pass


class FramingError(EventSocketError):
    """Malformed header block, bad Content-Length or undecodable event body"""
    fatal = True


class ProtocolError(EventSocketError):
    """
    The server answered a request with an error reply (-ERR ...).
    The connection stays usable.
    """
    def __init__(self, message: str, reply_text: Optional[str] = None):
        super().__init__(message)
        self.reply_text = reply_text if reply_text is not None else message


class UnsupportedContentTypeError(ProtocolError):
    """Frame with an unknown Content-Type; the stream cannot be trusted anymore"""
    fatal = True

    def __init__(self, content_type: str):
        super().__init__(f"Unsupported content type: {content_type!r}", content_type)
        self.content_type = content_type


class HandshakeError(EventSocketError):
    """Missing auth/request banner or broken stream while connecting"""
    fatal = True


class AuthenticationError(HandshakeError):
    """The server rejected the shared secret"""
    pass


class CommandValidationError(EventSocketError, ValueError):
    """Command, field or UUID carries a raw CR or LF; nothing was written"""
    pass


class ConversionError(EventSocketError, ValueError):
    """Header value is absent or not an integer"""
    pass


class ConnectionState(IntEnum):
    """Connection lifecycle states"""
    HANDSHAKING = 0
    ACTIVE = 1
    CLOSED = 2


class EventKind(str, Enum):
    """Classification of a decoded frame"""
    COMMAND_REPLY = "command_reply"
    API_REPLY = "api_reply"
    ASYNC_EVENT = "async_event"

    @property
    def synchronous(self) -> bool:
        return self is not EventKind.ASYNC_EVENT


class ContentType(str, Enum):
    """Content-Type values understood by the decoder"""
    AUTH_REQUEST = "auth/request"
    COMMAND_REPLY = "command/reply"
    API_RESPONSE = "api/response"
    EVENT_PLAIN = "text/event-plain"
    EVENT_JSON = "text/event-json"
    DISCONNECT_NOTICE = "text/disconnect-notice"
