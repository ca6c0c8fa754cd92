"""Request dispatcher: the FIFO queue and the single in-flight slot.

Fishbowl answers requests strictly in order and carries no request ID, so the
dispatcher writes exactly one request at a time and attributes every response
to whatever occupies the in-flight slot. All state changes happen in
synchronous sections on the event loop; the slot itself is the only mutex.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import deque
from collections.abc import Coroutine
from typing import Any, Final, cast

from fishbowl_link.classifier import ResponseClassifier
from fishbowl_link.correlation import correlation_context, generate_correlation_id, get_correlation_id
from fishbowl_link.metrics import registry
from fishbowl_link.protocol import envelope
from fishbowl_link.protocol.envelope import Envelope
from fishbowl_link.protocol.exceptions import (
    FishbowlError,
    FishbowlStatusError,
    InvalidOperationError,
    ResponseDecodeError,
)
from fishbowl_link.protocol.operations import Login, Logout, Operation, build_envelope, response_key
from fishbowl_link.protocol.status_codes import STATUS_INACTIVITY, status_message
from fishbowl_link.session import Session
from fishbowl_link.transport.connection_manager import ConnectionManager
from fishbowl_link.transport.exceptions import FishbowlConnectionError, RequestCancelledError, RequestTimeoutError
from fishbowl_link.transport.types import PendingRequest, ResponseMode

logger = logging.getLogger(__name__)

# An in-flight request answered with 1010 is re-sent after relogin at most this often
MAX_RESUBMITS: Final = 1

# Passed as a timeout, selects the dispatcher's request_timeout; None means no deadline
USE_DEFAULT_TIMEOUT: Final = object()


class RequestDispatcher:
    """Serializes operations over one ConnectionManager.

    **Ordering**: FIFO, except that a login submitted while unauthenticated
    jumps ahead of every queued non-login request.

    **Recovery**: requests queued while disconnected wait for the reconnect
    (and auto-login); an in-flight request answered with the inactivity code
    is put back at the head of the queue once and re-sent after relogin. An
    automatic login left unanswered for ``request_timeout`` resets the
    connection so the queue is not held behind it.

    The dispatcher is the connection manager's listener; it must be the only
    writer on that connection.
    """

    def __init__(
        self,
        session: Session,
        connection: ConnectionManager,
        classifier: ResponseClassifier | None = None,
        *,
        auto_login: bool = True,
        request_timeout: float | None = None,
    ) -> None:
        self.session: Session = session
        self.connection: ConnectionManager = connection
        self.classifier: ResponseClassifier = classifier or ResponseClassifier(session)
        self.auto_login: bool = auto_login
        self.request_timeout: float | None = request_timeout
        connection.listener = self

        self._queue: deque[PendingRequest] = deque()
        self._in_flight: PendingRequest | None = None
        self._resetting: bool = False
        self._closed: bool = False
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> PendingRequest | None:
        return self._in_flight

    @property
    def queue_depth(self) -> int:
        return len(self._queue)

    def queued(self) -> list[PendingRequest]:
        """Snapshot of the queue in dispatch order."""
        return list(self._queue)

    async def submit(
        self,
        operation: Operation,
        mode: ResponseMode = ResponseMode.STRUCTURED,
        timeout: float | None | object = USE_DEFAULT_TIMEOUT,
    ) -> Any:
        """Queue an operation and wait for its classified result.

        Args:
            operation: Operation to send
            mode: How a successful response is shaped
            timeout: Deadline in seconds, queue wait included (None: wait forever,
                omitted: the dispatcher's request_timeout)

        Returns:
            The classified result; None for a login while already logged in

        Raises:
            FishbowlStatusError: Server answered with a non-success status
            FishbowlConnectionError: Connection failed before a response arrived
            RequestTimeoutError: Deadline expired
            InvalidOperationError: Operation could not be encoded

        """
        if self._closed:
            raise FishbowlConnectionError("client closed", fatal=True)

        if isinstance(operation, Login) and self.session.logged_in:
            logger.debug("Already logged in, skipping login")
            return None

        deadline = self.request_timeout if timeout is USE_DEFAULT_TIMEOUT else cast("float | None", timeout)
        correlation_id = get_correlation_id() or generate_correlation_id()
        pending = PendingRequest(
            operation=operation,
            mode=mode,
            future=asyncio.get_running_loop().create_future(),
            correlation_id=correlation_id,
        )

        with correlation_context(correlation_id):
            logger.debug(
                "→ Queueing request",
                extra={"operation": pending.name, "queue_depth": len(self._queue)},
            )
            self._enqueue(pending)
            self._pump()
            try:
                async with asyncio.timeout(deadline):
                    return await pending.future
            except TimeoutError as e:
                in_flight = self._abandon(pending, "timeout")
                logger.warning(
                    "✗ Request timed out",
                    extra={"operation": pending.name, "timeout": deadline, "in_flight": in_flight},
                )
                raise RequestTimeoutError(pending.name, deadline or 0.0, in_flight=in_flight) from e
            except asyncio.CancelledError:
                _ = self._abandon(pending, "cancelled")
                raise

    def cancel_pending(self, reason: str = "cancelled") -> int:
        """Fail every queued (not yet written) request with RequestCancelledError.

        Returns:
            Number of requests withdrawn

        """
        withdrawn = 0
        while self._queue:
            pending = self._queue.popleft()
            self._fail(pending, RequestCancelledError(pending.name, reason))
            withdrawn += 1
        registry.record_queue_depth(0)
        if withdrawn:
            logger.info("Withdrew queued requests", extra={"count": withdrawn, "reason": reason})
        return withdrawn

    async def close(self) -> None:
        """Fail everything outstanding and disconnect for good."""
        if self._closed:
            return
        self._closed = True
        error = FishbowlConnectionError("client closed", state=self.connection.state.value, fatal=True)
        self._fail_outstanding(error)
        for task in list(self._tasks):
            _ = task.cancel()
        for task in list(self._tasks):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.connection.close()

    # -- queue management ---------------------------------------------------

    def _enqueue(self, pending: PendingRequest) -> None:
        if pending.is_login and not self.session.logged_in:
            # Login bypass: ahead of everything except logins already waiting
            index = 0
            while index < len(self._queue) and self._queue[index].is_login:
                index += 1
            self._queue.insert(index, pending)
        else:
            self._queue.append(pending)
        registry.record_queue_depth(len(self._queue))

    def _login_waiting(self) -> bool:
        if self._in_flight is not None and self._in_flight.is_login:
            return True
        return any(p.is_login for p in self._queue)

    def _internal_login(self) -> PendingRequest:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        return PendingRequest(
            operation=Login(),
            mode=ResponseMode.PASSTHROUGH,
            future=future,
            correlation_id=generate_correlation_id(),
            internal=True,
        )

    def _abandon(self, pending: PendingRequest, outcome: str) -> bool:
        """Withdraw a request whose caller stopped waiting.

        Returns:
            True if the request was in flight (the connection is then reset)

        """
        registry.record_request(pending.name, outcome)
        if pending is self._in_flight:
            self._reset_in_flight(pending, outcome)
            return True

        with contextlib.suppress(ValueError):
            self._queue.remove(pending)
        registry.record_queue_depth(len(self._queue))
        return False

    def _reset_in_flight(self, pending: PendingRequest, outcome: str) -> None:
        self._in_flight = None
        logger.warning(
            "Resetting connection after abandoning in-flight request",
            extra={"operation": pending.name, "outcome": outcome},
        )
        self._resetting = True
        self._spawn(self._reset_connection())

    async def _reset_connection(self) -> None:
        # A late response to the abandoned request must never reach the next one
        try:
            await self.connection.disconnect()
        finally:
            self._resetting = False
            self._pump()

    # -- dispatch -----------------------------------------------------------

    def _pump(self, reason: str = "connect") -> None:
        """Dispatch the next queued request if the in-flight slot is free."""
        if self._closed or self._resetting or self._in_flight is not None:
            return
        if not self._queue:
            return

        if not self.connection.is_connected():
            _ = self.connection.ensure_connecting(reason)
            return

        while self._queue:
            head = self._queue[0]
            if self.auto_login and not self.session.logged_in and not head.is_login and not head.done:
                self._queue.appendleft(self._internal_login())

            pending = self._queue.popleft()
            if pending.done:
                continue
            if pending.is_login and self.session.logged_in:
                # Another login got there first
                self._resolve(pending, None)
                continue

            try:
                payload = build_envelope(pending.operation, self.session)
            except InvalidOperationError as e:
                self._fail(pending, e)
                continue

            pending.dispatched_at = time.monotonic()
            self._in_flight = pending
            if pending.internal and self.request_timeout is not None:
                # An automatic login has no caller deadline of its own
                pending.deadline_timer = asyncio.get_running_loop().call_later(
                    self.request_timeout,
                    self._internal_request_expired,
                    pending,
                )
            self._spawn(self._write(pending, payload))
            break

        registry.record_queue_depth(len(self._queue))

    def _internal_request_expired(self, pending: PendingRequest) -> None:
        if pending is not self._in_flight or pending.done:
            return
        timeout = self.request_timeout or 0.0
        with correlation_context(pending.correlation_id):
            logger.warning(
                "✗ Automatic login unanswered, reconnecting",
                extra={"timeout": timeout, "queued": len(self._queue)},
            )
            # Queued requests stay queued; their own deadlines still apply
            self._reset_in_flight(pending, "timeout")
            self._fail(pending, RequestTimeoutError(pending.name, timeout, in_flight=True))

    async def _write(self, pending: PendingRequest, payload: str) -> None:
        with correlation_context(pending.correlation_id):
            logger.debug(
                "→ Sending request",
                extra={"operation": pending.name, "bytes": len(payload), "resubmits": pending.resubmits},
            )
            # A failed write is reported back through on_connection_error
            _ = await self.connection.send_frame(payload)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -- resolution ---------------------------------------------------------

    def _resolve(self, pending: PendingRequest, result: Any) -> None:
        if pending.done:
            return
        pending.cancel_deadline()
        pending.future.set_result(result)
        self._record_outcome(pending, "success")

    def _fail(self, pending: PendingRequest, error: BaseException) -> None:
        if pending.done:
            return
        pending.cancel_deadline()
        pending.future.set_exception(error)
        if pending.internal:
            # Nobody awaits internal requests; mark the exception retrieved
            _ = pending.future.exception()
        self._record_outcome(pending, type(error).__name__)

    def _record_outcome(self, pending: PendingRequest, outcome: str) -> None:
        registry.record_request(pending.name, outcome)
        if pending.dispatched_at is not None:
            registry.record_request_latency(pending.name, time.monotonic() - pending.dispatched_at)

    def _fail_queued(self, error: BaseException) -> None:
        while self._queue:
            self._fail(self._queue.popleft(), error)
        registry.record_queue_depth(0)

    def _fail_outstanding(self, error: BaseException) -> None:
        pending, self._in_flight = self._in_flight, None
        if pending is not None:
            self._fail(pending, error)
        self._fail_queued(error)

    def _fail_login(self, pending: PendingRequest, error: FishbowlError) -> None:
        """An automatic login failed: queued requests cannot succeed without it."""
        self._fail(pending, error)
        logger.error("✗ Automatic login failed: %s", error, extra={"queued": len(self._queue)})
        self._fail_queued(error)

    # -- ConnectionListener -------------------------------------------------

    def on_connected(self) -> None:
        if self.auto_login and not self.session.logged_in and not self._login_waiting():
            self._queue.appendleft(self._internal_login())
        self._pump()

    def on_response(self, response: Envelope) -> None:
        pending = self._in_flight
        response_type, _ = envelope.response_item(response)
        if pending is None:
            logger.warning(
                "Dropping response with no request in flight",
                extra={"response_type": response_type},
            )
            return
        self._in_flight = None

        with correlation_context(pending.correlation_id):
            expected = response_key(pending.operation)
            if response_type is not None and response_type != expected:
                logger.warning(
                    "Response type does not match request",
                    extra={"expected": expected, "received": response_type},
                )
            try:
                result = self.classifier.classify(response, pending.mode)
            except FishbowlStatusError as e:
                if pending.internal and pending.is_login:
                    self._fail_login(pending, e)
                else:
                    self._fail(pending, e)
            except (TypeError, ValueError) as e:
                self._fail(pending, ResponseDecodeError(f"malformed_status: {e}", str(response)))
            else:
                logger.debug("✓ Request completed", extra={"operation": pending.name})
                self._resolve(pending, result)

        self._pump()

    def on_session_expired(self, response: Envelope) -> None:
        pending, self._in_flight = self._in_flight, None
        if pending is not None:
            with correlation_context(pending.correlation_id):
                if pending.is_login or isinstance(pending.operation, Logout) or pending.resubmits >= MAX_RESUBMITS:
                    response_type, _ = envelope.response_item(response)
                    message = envelope.messages(response).get(envelope.STATUS_MESSAGE) or status_message(
                        STATUS_INACTIVITY,
                    )
                    error = FishbowlStatusError(STATUS_INACTIVITY, str(message), response_type)
                    if pending.internal and pending.is_login:
                        self._fail_login(pending, error)
                    else:
                        self._fail(pending, error)
                else:
                    pending.resubmits += 1
                    pending.dispatched_at = None
                    self._queue.appendleft(pending)
                    registry.record_resubmit(pending.name)
                    logger.info(
                        "→ Re-queued request after session expiry",
                        extra={"operation": pending.name, "resubmits": pending.resubmits},
                    )
        self._pump("session_expired")

    def on_response_error(self, error: ResponseDecodeError) -> None:
        pending, self._in_flight = self._in_flight, None
        if pending is None:
            logger.warning("Undecodable response with no request in flight", extra={"reason": error.reason})
        else:
            self._fail(pending, error)
        self._pump()

    def on_connection_error(self, error: FishbowlError) -> None:
        pending, self._in_flight = self._in_flight, None
        if pending is not None:
            self._fail(pending, error)
        if isinstance(error, FishbowlConnectionError) and error.fatal:
            self._fail_queued(error)
        self._pump("connection_error")

    def on_connect_failed(self, error: FishbowlConnectionError) -> None:
        logger.error(
            "✗ Giving up on connection, failing outstanding requests",
            extra={"queued": len(self._queue), "fatal": error.fatal},
        )
        self._fail_outstanding(error)
