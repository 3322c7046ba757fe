"""
Core package initialization.
Contains the frame parser, event decoder, command encoder and connection engine.
"""

from .interfaces import (
    EventSocketError,
    TransportError,
    ConnectionClosedError,
    FramingError,
    ProtocolError,
    UnsupportedContentTypeError,
    HandshakeError,
    AuthenticationError,
    CommandValidationError,
    ConversionError,
    ConnectionState,
    ContentType,
    EventKind,
)
from .headers import normalize_key
from .framing import Frame, read_frame
from .decoder import decode_frame
from .models import Event
from .commands import encode_command, encode_sendmsg
from .connection import Connection

__all__ = [
    'EventSocketError',
    'TransportError',
    'ConnectionClosedError',
    'FramingError',
    'ProtocolError',
    'UnsupportedContentTypeError',
    'HandshakeError',
    'AuthenticationError',
    'CommandValidationError',
    'ConversionError',
    'ConnectionState',
    'ContentType',
    'EventKind',
    'normalize_key',
    'Frame',
    'read_frame',
    'decode_frame',
    'Event',
    'encode_command',
    'encode_sendmsg',
    'Connection',
]
