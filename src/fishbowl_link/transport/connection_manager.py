"""Connection management with state machine, frame reader and reconnection.

This module implements the ConnectionManager class which owns the single TCP
connection to the Fishbowl server: connect/reconnect, the background frame
reader, fatal/transient error classification and inactivity detection.
Everything it observes is reported to a ConnectionListener (the dispatcher).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from fishbowl_link.metrics import registry
from fishbowl_link.protocol import envelope
from fishbowl_link.protocol.envelope import Envelope
from fishbowl_link.protocol.exceptions import FishbowlError, FrameDecodeError, ResponseDecodeError
from fishbowl_link.protocol.frame_codec import DEFAULT_MAX_FRAME_SIZE, FrameDecoder, encode_frame
from fishbowl_link.protocol.status_codes import STATUS_INACTIVITY
from fishbowl_link.session import Session
from fishbowl_link.transport.exceptions import FishbowlConnectionError
from fishbowl_link.transport.retry_policy import RetryPolicy, TimeoutConfig
from fishbowl_link.transport.socket_abstraction import TCPConnection

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection state enumeration."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionListener(Protocol):
    """Receives everything the connection manager observes.

    All callbacks run synchronously on the event loop and must not block.
    """

    def on_connected(self) -> None: ...

    def on_response(self, response: Envelope) -> None: ...

    def on_session_expired(self, response: Envelope) -> None: ...

    def on_response_error(self, error: ResponseDecodeError) -> None: ...

    def on_connection_error(self, error: FishbowlError) -> None: ...

    def on_connect_failed(self, error: FishbowlConnectionError) -> None: ...


class ConnectionManager:
    """Owns the socket, the frame decoder and the reader task.

    **State**: DISCONNECTED -> CONNECTING -> CONNECTED. An inactivity response
    (status 1010) leaves the socket open but marks the connection *stale*;
    ``is_connected()`` is then False and the next ``connect()`` replaces it.

    **Errors**: fatal errors (refused, unreachable, unresolved) are reported
    and never retried. Transient errors are reported, then a reconnect task is
    started with exponential backoff. A peer close is reported without an
    automatic reconnect; the next dispatch reconnects on demand.
    """

    def __init__(
        self,
        session: Session,
        timeout_config: TimeoutConfig | None = None,
        retry_policy: RetryPolicy | None = None,
        max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
        connection_factory: Callable[[], TCPConnection] | None = None,
    ) -> None:
        """Initialize connection manager.

        Args:
            session: Session holding host/port and login state
            timeout_config: Timeout configuration (defaults to TimeoutConfig() if None)
            retry_policy: Reconnect backoff (defaults to RetryPolicy() if None)
            max_frame_size: Largest accepted inbound frame body
            connection_factory: Builds a fresh TCPConnection per connect (tests inject fakes)

        """
        self.session: Session = session
        self.timeout_config: TimeoutConfig = timeout_config or TimeoutConfig()
        self.retry_policy: RetryPolicy = retry_policy or RetryPolicy()
        self.connection_factory: Callable[[], TCPConnection] = connection_factory or self._default_connection
        self.listener: ConnectionListener | None = None

        self.conn: TCPConnection | None = None
        self.state: ConnectionState = ConnectionState.DISCONNECTED
        self.stale: bool = False
        self.decoder: FrameDecoder = FrameDecoder(max_frame_size)
        self.reader_task: asyncio.Task[None] | None = None
        self.connect_task: asyncio.Task[None] | None = None
        self.last_connect_error: FishbowlConnectionError | None = None
        self._connect_lock: asyncio.Lock = asyncio.Lock()
        self._closed: bool = False

    def _default_connection(self) -> TCPConnection:
        return TCPConnection(
            self.session.host,
            self.session.port,
            connect_timeout=self.timeout_config.connect_timeout_seconds,
            write_timeout=self.timeout_config.write_timeout_seconds,
        )

    def _set_state(self, state: ConnectionState) -> None:
        if state != self.state:
            logger.debug(
                "Connection state %s -> %s",
                self.state.value,
                state.value,
                extra={"host": self.session.host, "from": self.state.value, "to": state.value},
            )
        self.state = state
        registry.record_connection_state(self.session.host, state.value)

    def is_connected(self) -> bool:
        """True when a live, non-stale connection is available for writes."""
        return self.state == ConnectionState.CONNECTED and not self.stale

    async def connect(self) -> None:
        """Open a connection unless a live one exists; a stale one is replaced.

        On success the session becomes Connected-LoggedOut, the reader task
        starts and ``listener.on_connected()`` runs.

        Raises:
            FishbowlConnectionError: Connect failed (``fatal`` tells whether to retry)

        """
        if self._closed:
            raise FishbowlConnectionError("connection manager closed", state=self.state.value, fatal=True)
        # Concurrent callers share one socket: the second one finds it connected
        async with self._connect_lock:
            if self.is_connected():
                return
            await self._open()

    async def _open(self) -> None:
        await self._teardown()

        self._set_state(ConnectionState.CONNECTING)
        conn = self.connection_factory()
        try:
            await conn.connect()
        except FishbowlConnectionError as e:
            self._set_state(ConnectionState.DISCONNECTED)
            self.session.mark_disconnected("connect_failed")
            registry.record_connection_error(self.session.host, "fatal" if e.fatal else "transient")
            raise

        self.conn = conn
        self.stale = False
        self.decoder.reset()
        self._set_state(ConnectionState.CONNECTED)
        self.session.mark_connected()
        self.reader_task = asyncio.create_task(self._frame_reader(conn))
        logger.info("✓ Connected to Fishbowl", extra={"host": self.session.host, "port": self.session.port})
        if self.listener:
            self.listener.on_connected()

    async def connect_with_retry(self, reason: str = "connect") -> None:
        """Connect, retrying transient failures with exponential backoff.

        Raises:
            FishbowlConnectionError: Fatal failure, or every attempt failed

        """
        delays = self.retry_policy.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                await self.connect()
            except FishbowlConnectionError as e:
                if e.fatal:
                    logger.error(
                        "✗ Fatal connection error, not retrying: %s",
                        e.reason,
                        extra={"host": self.session.host, "reason": reason},
                    )
                    raise
                delay = next(delays, None)
                if delay is None:
                    logger.error(
                        "✗ Connect failed after %d attempts",
                        attempt,
                        extra={"host": self.session.host, "reason": reason, "attempts": attempt},
                    )
                    raise
                logger.debug(
                    "Retrying connect",
                    extra={"delay": delay, "attempt": attempt, "reason": reason},
                )
                await asyncio.sleep(delay)
            else:
                return

    def ensure_connecting(self, reason: str) -> asyncio.Task[None]:
        """Start a background connect unless one is already running.

        Failures are reported to ``listener.on_connect_failed()``.
        """
        if self.connect_task is None or self.connect_task.done():
            logger.info("→ Starting connection", extra={"host": self.session.host, "reason": reason})
            if reason != "connect":
                registry.record_reconnection(self.session.host, reason)
            self.connect_task = asyncio.create_task(self._run_connect(reason))
        else:
            logger.debug("Connection attempt already in progress", extra={"reason": reason})
        return self.connect_task

    async def _run_connect(self, reason: str) -> None:
        self.last_connect_error = None
        try:
            await self.connect_with_retry(reason)
        except FishbowlConnectionError as e:
            self.last_connect_error = e
            if self.listener:
                self.listener.on_connect_failed(e)

    async def send_frame(self, payload: str) -> bool:
        """Encode and write one request.

        Returns:
            True if written; False if the write failed (the failure has
            already been reported to the listener)

        """
        conn = self.conn
        # A stale socket is still writable; the server answers with 1010 again
        if conn is None or self.state != ConnectionState.CONNECTED:
            await self._handle_failure(
                conn,
                FishbowlConnectionError("cannot send: not connected", state=self.state.value),
                reconnect=False,
            )
            return False
        try:
            await conn.send(encode_frame(payload))
        except FishbowlConnectionError as e:
            await self._handle_failure(conn, e, reconnect=not e.fatal)
            return False
        return True

    async def _frame_reader(self, conn: TCPConnection) -> None:
        """Read chunks, reassemble frames and route decoded envelopes.

        **Task Lifecycle**:
        - **Start**: Created by connect() once the socket is open
        - **Stop**: Cancelled by disconnect()/connect(), or exits on EOF/error
        """
        try:
            while True:
                data = await conn.recv()
                if not data:
                    error = FishbowlConnectionError("connection closed by server", state=self.state.value)
                    await self._handle_failure(conn, error, reconnect=False)
                    return
                try:
                    frames = self.decoder.feed(data)
                except FrameDecodeError as e:
                    registry.record_decode_error(e.reason)
                    await self._handle_failure(conn, e, reconnect=True)
                    return
                for frame in frames:
                    if conn is not self.conn:
                        return
                    self._process_frame(frame)
        except asyncio.CancelledError:
            logger.debug("Frame reader cancelled (clean shutdown)")
            raise
        except FishbowlConnectionError as e:
            await self._handle_failure(conn, e, reconnect=not e.fatal)
        except Exception as e:
            # Broad catch: an unhandled error here would leave the connection without a reader
            logger.exception(
                "Frame reader crashed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            crash = FishbowlConnectionError(f"frame reader crashed: {e}", state=self.state.value)
            await self._handle_failure(conn, crash, reconnect=True)
            raise

    def _process_frame(self, frame: bytes) -> None:
        registry.record_frame_received()
        try:
            response = envelope.parse_response(frame)
        except ResponseDecodeError as e:
            registry.record_decode_error(e.reason)
            logger.warning(
                "Response decode failed",
                extra={"reason": e.reason, "preview": e.data_preview},
            )
            if self.listener:
                self.listener.on_response_error(e)
            return

        if envelope.outer_status(response) == STATUS_INACTIVITY:
            logger.warning(
                "Session expired on server (inactivity), connection marked stale",
                extra={"host": self.session.host},
            )
            self.stale = True
            self.session.mark_logged_out("inactivity")
            if self.listener:
                self.listener.on_session_expired(response)
            return

        if self.listener:
            self.listener.on_response(response)

    async def _handle_failure(self, conn: TCPConnection | None, error: FishbowlError, *, reconnect: bool) -> None:
        """Tear down a failed connection, report the error, maybe reconnect."""
        if conn is not None and conn is not self.conn:
            # Already replaced by a newer connection; nothing to report
            await conn.close()
            return

        fatal = isinstance(error, FishbowlConnectionError) and error.fatal
        registry.record_connection_error(self.session.host, "fatal" if fatal else "transient")
        logger.error(
            "✗ Connection failure: %s",
            error,
            extra={"host": self.session.host, "fatal": fatal, "error_type": type(error).__name__},
        )

        self.conn = None
        self.stale = False
        self.decoder.reset()
        if self.reader_task is not None and self.reader_task is not asyncio.current_task():
            _ = self.reader_task.cancel()
        self.reader_task = None
        self._set_state(ConnectionState.DISCONNECTED)
        self.session.mark_disconnected("connection_error")

        if self.listener:
            self.listener.on_connection_error(error)

        if conn is not None:
            await conn.close()

        if reconnect and not fatal and not self._closed:
            _ = self.ensure_connecting("transient_error")

    async def _teardown(self) -> None:
        """Stop the reader and close the current socket, if any."""
        if self.reader_task is not None and self.reader_task is not asyncio.current_task():
            if not self.reader_task.done():
                _ = self.reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self.reader_task
        self.reader_task = None

        conn, self.conn = self.conn, None
        if conn is not None:
            await conn.close()
        self.stale = False
        self.decoder.reset()

    async def disconnect(self) -> None:
        """Clean disconnect with task cleanup.

        Task cleanup order: connect task, reader task, then the socket.
        """
        logger.info("Disconnecting...")
        if self.connect_task is not None and self.connect_task is not asyncio.current_task():
            if not self.connect_task.done():
                _ = self.connect_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self.connect_task
        self.connect_task = None
        try:
            await self._teardown()
        finally:
            self._set_state(ConnectionState.DISCONNECTED)
            self.session.mark_disconnected("disconnect")
            logger.info("Disconnect complete")

    async def close(self) -> None:
        """Disconnect for good; further connects are refused."""
        self._closed = True
        await self.disconnect()
