# src/eventsocket/core/connection.py
"""
Event Socket connection engine.
Owns one duplex stream and runs a single background task that reads frames,
decodes them and routes the results onto three delivery paths: synchronous
replies (command and api replies, plus recoverable -ERR errors), asynchronous
events, and a single-shot fatal error. Command senders write directly to the
stream and then wait on the reply path; readers of events wait on the event
path. The reader task is the only code that reads the stream.

Fatal errors are delivered exactly once, to the first waiter that notices the
closure. Every other waiter, current or later, gets ConnectionClosedError.
Values already buffered on a path are handed out before closure is reported.

Writes are not serialized: overlapping send calls from several tasks on one
connection must be serialized by the caller, otherwise replies may be matched
to the wrong request.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional, Union

from ..utils.config import ConnectionConfig
from ..utils.logger import ESLLogger, log_function_call
from .commands import encode_command, encode_sendmsg, execute_fields, validate_line
from .decoder import decode_frame
from .framing import read_frame
from .interfaces import (
    AuthenticationError,
    ConnectionClosedError,
    ConnectionState,
    ContentType,
    EventSocketError,
    FramingError,
    HandshakeError,
    TransportError,
)
from .models import Event

AUTH_ACCEPTED = "+OK accepted"

Reply = Union[Event, EventSocketError]


class Connection:
    """
    One live Event Socket session over an asyncio stream pair.
    Created in the HANDSHAKING state; start() (or a successful authenticate()
    followed by start()) moves it to ACTIVE.
    """
    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        config: Optional[ConnectionConfig] = None,
    ):
        self.config = config or ConnectionConfig()
        self._reader = reader
        self._writer = writer
        self.state = ConnectionState.HANDSHAKING
        self._replies: "asyncio.Queue[Reply]" = asyncio.Queue(maxsize=self.config.replies_buffer)
        self._events: "asyncio.Queue[Event]" = asyncio.Queue(maxsize=self.config.events_buffer)
        # Holds at most the one fatal error; taken by the first waiter to see closure
        self._error: "asyncio.Queue[EventSocketError]" = asyncio.Queue(maxsize=1)
        self._closed = asyncio.Event()
        self._read_task: Optional[asyncio.Task] = None
        self._stream_closed = False

        self.log = ESLLogger().get_logger(__name__).bind(
            component="Connection",
            remote_addr=str(self.remote_addr),
        )
        self._setup_logging()

    def _setup_logging(self) -> None:
        """Configure connection statistics"""
        self.debug_stats = {
            'frames_read': 0,
            'replies': 0,
            'events': 0,
            'protocol_errors': 0,
            'commands_sent': 0,
            'bytes_written': 0,
        }

    @property
    def remote_addr(self) -> Any:
        """Peer address of the underlying stream"""
        return self._writer.get_extra_info("peername")

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Lifecycle

    @log_function_call(level="DEBUG")
    async def authenticate(self, password: str) -> None:
        """
        Run the inbound handshake: wait for auth/request, send the secret and
        check the reply. The connection is closed if anything goes wrong.

        Raises:
            HandshakeError: If the banner is missing or the stream breaks
            AuthenticationError: If the secret is rejected
        """
        if self.state is not ConnectionState.HANDSHAKING:
            raise HandshakeError(f"Cannot authenticate in state {self.state.name}")
        try:
            banner = await read_frame(self._reader)
            if banner.content_type != ContentType.AUTH_REQUEST.value:
                raise HandshakeError("Missing auth request")
            self.log.debug("auth_request_received")

            validate_line(password, "password")
            await self._write_raw(f"auth {password}\r\n\r\n".encode("utf-8"))

            reply = await read_frame(self._reader)
            if reply.get("Reply-Text") != AUTH_ACCEPTED:
                raise AuthenticationError("Invalid password")
            self.log.info("authenticated")

        except HandshakeError as e:
            self.log.error("handshake_failed", error=str(e))
            await self.close()
            raise
        except (EventSocketError, OSError) as e:
            self.log.error("handshake_failed", error=str(e))
            await self.close()
            raise HandshakeError(f"Handshake failed: {e}") from e

    def start(self) -> None:
        """Start the reader task; at most one per connection"""
        if self.closed:
            raise ConnectionClosedError("Connection already closed")
        if self._read_task is not None:
            return
        self.state = ConnectionState.ACTIVE
        self._read_task = asyncio.create_task(self._read_loop())
        self.log.info("connection_active")

    @log_function_call(level="DEBUG")
    async def close(self) -> None:
        """Stop the reader task and close the stream; safe to call twice"""
        self._mark_closed()
        task = self._read_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.wait([task])
        await self._close_stream()

    def _mark_closed(self) -> None:
        if self.state is not ConnectionState.CLOSED:
            self.state = ConnectionState.CLOSED
            self._closed.set()
            self.log.info("connection_closed", stats=self.debug_stats)

    async def _close_stream(self) -> None:
        if self._stream_closed:
            return
        self._stream_closed = True
        try:
            self._writer.close()
            await self._writer.wait_closed()
        except (OSError, RuntimeError) as e:
            self.log.warning("stream_close_error", error=str(e))

    # Reader task

    async def _read_loop(self) -> None:
        """Read and route frames until a fatal error, then close the stream"""
        self.log.debug("read_loop_started")
        try:
            while await self._read_one():
                pass
        finally:
            self._mark_closed()
            await self._close_stream()

    async def _read_one(self) -> bool:
        """
        Read, decode and route a single frame.

        Returns:
            False once a fatal error has been delivered
        """
        try:
            frame = await read_frame(self._reader)
            self.debug_stats['frames_read'] += 1
            self.log.debug("frame_received", content_type=frame.content_type, body_length=len(frame.body))
            event = await decode_frame(frame)
        except EventSocketError as e:
            if e.fatal:
                self._fail(e)
                return False
            self.debug_stats['protocol_errors'] += 1
            self.log.warning("protocol_error", error=str(e))
            await self._replies.put(e)
            return True
        except OSError as e:
            self._fail(TransportError(f"Read failed: {e}"))
            return False
        except Exception as e:
            self._fail(FramingError(f"Undecodable frame: {e}"))
            return False

        if event.kind.synchronous:
            self.debug_stats['replies'] += 1
            await self._replies.put(event)
            self.log.debug("reply_routed", kind=event.kind.value)
        else:
            self.debug_stats['events'] += 1
            await self._events.put(event)
            self.log.debug("event_queued", event_name=event.event_name, queued=self._events.qsize())
        return True

    def _fail(self, error: EventSocketError) -> None:
        if self._error.empty() and not self.closed:
            self._error.put_nowait(error)
        self.log.error("fatal_error", error=str(error), error_type=type(error).__name__)
        self._mark_closed()

    def _take_error(self) -> EventSocketError:
        try:
            return self._error.get_nowait()
        except asyncio.QueueEmpty:
            return ConnectionClosedError("Connection closed")

    async def _receive(self, queue: "asyncio.Queue") -> Any:
        """Wait for the next value on a delivery path, or for closure"""
        if queue.empty():
            if self._closed.is_set():
                raise self._take_error()
            getter = asyncio.ensure_future(queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                closer.cancel()
                if not getter.done():
                    getter.cancel()
            if getter.cancelled() or not getter.done():
                raise self._take_error()
            item = getter.result()
        else:
            item = queue.get_nowait()

        if isinstance(item, EventSocketError):
            raise item
        return item

    # Writing

    async def _write_raw(self, data: bytes) -> None:
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (OSError, RuntimeError) as e:
            raise TransportError(f"Write failed: {e}") from e
        self.debug_stats['bytes_written'] += len(data)

    async def _write(self, data: bytes) -> None:
        if self.closed:
            raise self._take_error()
        if self._read_task is None:
            # nothing would read the reply
            raise HandshakeError("Connection not started")
        try:
            await self._write_raw(data)
        except TransportError as e:
            self.log.error("write_failed", error=str(e))
            await self.close()
            raise
        self.debug_stats['commands_sent'] += 1

    # Commands

    async def send(self, command: str) -> Event:
        """
        Send a single command and wait for its reply.

        Example:
            await conn.send("events json ALL")

        Raises:
            CommandValidationError: If the command contains CR or LF
            ProtocolError: If the server answered -ERR
            HandshakeError: If the reader task has not been started
            TransportError: If the connection broke
        """
        data = encode_command(command)
        self.log.debug("command_send", command=command.split(" ", 1)[0])
        await self._write(data)
        return await self._receive(self._replies)

    async def send_msg(
        self,
        fields: Mapping[str, str],
        uuid: str = "",
        payload: str = "",
    ) -> Event:
        """
        Send a sendmsg block and wait for its reply.

        Fields with empty values are omitted; uuid and payload are optional.
        The payload is sent only with a lower-case "content-length" field.

        Example:
            await conn.send_msg({
                "call-command": "hangup",
                "hangup-cause": "NORMAL_CLEARING",
            })
        """
        data = encode_sendmsg(fields, uuid, payload)
        self.log.debug("sendmsg_send", call_command=fields.get("call-command", ""), uuid=uuid)
        await self._write(data)
        return await self._receive(self._replies)

    async def execute(self, app_name: str, app_arg: str = "", lock: bool = False) -> Event:
        """
        Execute a dialplan application on the controlled channel (outbound mode).

        Example:
            await conn.execute("playback", "/tmp/test.wav", lock=True)
        """
        return await self.send_msg(execute_fields(app_name, app_arg, lock))

    async def execute_uuid(self, uuid: str, app_name: str, app_arg: str = "") -> Event:
        """Execute an application on the channel identified by uuid (inbound mode)"""
        return await self.send_msg(execute_fields(app_name, app_arg), uuid=uuid)

    async def read_event(self) -> Event:
        """
        Wait for the next asynchronous event, plain or JSON.

        Raises:
            TransportError: If the connection closed (fatal error first, once)
            FramingError: If the stream became unreadable
        """
        return await self._receive(self._events)

    def get_debug_info(self) -> Dict[str, Any]:
        """Get debug statistics and state information"""
        return {
            **self.debug_stats,
            'state': self.state.name,
            'pending_replies': self._replies.qsize(),
            'pending_events': self._events.qsize(),
        }
