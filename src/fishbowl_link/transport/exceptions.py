"""Custom exception types for transport layer errors.

This module defines the exception hierarchy for connection and request
lifecycle errors, extending the protocol exceptions.
"""

from __future__ import annotations

import errno
import socket

from fishbowl_link.protocol.exceptions import FishbowlError

# errno values that mean "nobody is listening there" - retrying will not help
FATAL_ERRNOS: frozenset[int] = frozenset(
    {
        errno.ECONNREFUSED,
        errno.EHOSTUNREACH,
        errno.ENETUNREACH,
        errno.EADDRNOTAVAIL,
    },
)


def is_fatal_socket_error(error: BaseException) -> bool:
    """Classify a socket error as fatal (address/refused/DNS) or transient."""
    if isinstance(error, socket.gaierror | ConnectionRefusedError):
        return True
    if isinstance(error, OSError) and error.errno in FATAL_ERRNOS:
        return True
    # asyncio.open_connection wraps multi-address failures in a plain OSError
    # whose message lists each refusal
    return isinstance(error, OSError) and error.errno is None and "Connect call failed" in str(error)


class FishbowlConnectionError(FishbowlError):
    """Connection-level failure (refused, unreachable, reset, closed, ...).

    Note: Named FishbowlConnectionError to avoid shadowing Python's built-in ConnectionError.

    Attributes:
        reason: Specific failure reason
        state: Connection state when error occurred
        fatal: True for address/refused/DNS failures that must not be retried

    """

    def __init__(self, reason: str, state: str = "unknown", *, fatal: bool = False) -> None:
        """Initialize connection error with reason and state."""
        self.reason: str = reason
        self.state: str = state
        self.fatal: bool = fatal
        kind = "fatal" if fatal else "transient"
        super().__init__(f"Connection error ({kind}): {reason} (state: {state})")

    @classmethod
    def from_os_error(cls, error: BaseException, state: str = "unknown") -> FishbowlConnectionError:
        """Wrap a socket-level error, classifying it as fatal or transient."""
        reason = str(error) or type(error).__name__
        return cls(reason, state=state, fatal=is_fatal_socket_error(error))


class RequestTimeoutError(FishbowlError):
    """Request did not complete before its deadline.

    Attributes:
        operation: Operation name (e.g. "PartGet")
        timeout_seconds: Deadline that was exceeded
        in_flight: True if the request had already been written to the socket

    """

    def __init__(self, operation: str, timeout_seconds: float, *, in_flight: bool = False) -> None:
        self.operation: str = operation
        self.timeout_seconds: float = timeout_seconds
        self.in_flight: bool = in_flight
        where = "in flight" if in_flight else "queued"
        super().__init__(f"{operation} timed out after {timeout_seconds}s ({where})")


class RequestCancelledError(FishbowlError):
    """Request was withdrawn before a response was delivered.

    Attributes:
        operation: Operation name
        reason: Why the request was withdrawn (e.g. "client closed")

    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation: str = operation
        self.reason: str = reason
        super().__init__(f"{operation} cancelled: {reason}")
