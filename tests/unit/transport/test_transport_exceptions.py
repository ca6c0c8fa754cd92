"""Unit tests for transport exceptions and socket error classification."""

from __future__ import annotations

import errno
import socket

import pytest

from fishbowl_link.protocol.exceptions import FishbowlError, FishbowlProtocolError
from fishbowl_link.transport.exceptions import (
    FishbowlConnectionError,
    RequestCancelledError,
    RequestTimeoutError,
    is_fatal_socket_error,
)


class TestExceptionHierarchy:
    def test_transport_errors_are_fishbowl_errors(self):
        for error_type in (FishbowlConnectionError, RequestTimeoutError, RequestCancelledError):
            assert issubclass(error_type, FishbowlError)
            assert not issubclass(error_type, FishbowlProtocolError)

    def test_not_builtin_connection_error(self):
        assert not issubclass(FishbowlConnectionError, ConnectionError)


class TestIsFatalSocketError:
    @pytest.mark.parametrize(
        "error",
        [
            ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"),
            socket.gaierror(socket.EAI_NONAME, "Name or service not known"),
            OSError(errno.EHOSTUNREACH, "No route to host"),
            OSError(errno.ENETUNREACH, "Network is unreachable"),
            OSError("Multiple exceptions: [Errno 111] Connect call failed ('127.0.0.1', 1)"),
        ],
    )
    def test_fatal(self, error: BaseException):
        assert is_fatal_socket_error(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            ConnectionResetError(errno.ECONNRESET, "Connection reset by peer"),
            BrokenPipeError(errno.EPIPE, "Broken pipe"),
            OSError(errno.ETIMEDOUT, "Timed out"),
            OSError("something else"),
        ],
    )
    def test_transient(self, error: BaseException):
        assert is_fatal_socket_error(error) is False


class TestFishbowlConnectionError:
    def test_defaults(self):
        error = FishbowlConnectionError("not_connected")
        assert error.reason == "not_connected"
        assert error.state == "unknown"
        assert error.fatal is False
        assert "transient" in str(error)

    def test_fatal_with_state(self):
        error = FishbowlConnectionError("refused", state="connecting", fatal=True)
        assert error.fatal is True
        assert "fatal" in str(error)
        assert "connecting" in str(error)

    def test_from_os_error_classifies(self):
        refused = FishbowlConnectionError.from_os_error(ConnectionRefusedError(errno.ECONNREFUSED, "refused"))
        reset = FishbowlConnectionError.from_os_error(ConnectionResetError(errno.ECONNRESET, "reset"))
        assert refused.fatal is True
        assert reset.fatal is False

    def test_from_os_error_without_message(self):
        error = FishbowlConnectionError.from_os_error(ConnectionResetError())
        assert error.reason == "ConnectionResetError"


class TestRequestErrors:
    def test_timeout_in_flight(self):
        error = RequestTimeoutError("PartGet", 2.5, in_flight=True)
        assert error.operation == "PartGet"
        assert error.timeout_seconds == 2.5
        assert str(error) == "PartGet timed out after 2.5s (in flight)"

    def test_timeout_queued(self):
        assert "(queued)" in str(RequestTimeoutError("PartGet", 1.0))

    def test_cancelled(self):
        error = RequestCancelledError("ExecuteQuery", "client closed")
        assert error.reason == "client closed"
        assert "ExecuteQuery cancelled" in str(error)
