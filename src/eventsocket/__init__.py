"""
Event Socket package.
asyncio client and server for the switch's Event Socket protocol, in both
inbound (connect and authenticate) and outbound (accept per-call) modes.
"""

from .utils.logger import ESLLogger, LoggerConfig

# Configure basic logger before importing modules
logger = ESLLogger()
logger.configure(LoggerConfig(level="INFO", format="json"))

# Now it's safe to import submodules
from . import utils
from . import core
from . import session

from .core import (
    AuthenticationError,
    CommandValidationError,
    Connection,
    ConnectionClosedError,
    ConnectionState,
    ConversionError,
    Event,
    EventKind,
    EventSocketError,
    FramingError,
    HandshakeError,
    ProtocolError,
    TransportError,
    UnsupportedContentTypeError,
)
from .session import dial, dial_from_config, listen_and_serve, serve, serve_from_config

__version__ = "1.0.0"
