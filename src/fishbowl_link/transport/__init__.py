"""Transport layer - socket, connection lifecycle, retry policy and request types."""

from fishbowl_link.transport.connection_manager import ConnectionListener, ConnectionManager, ConnectionState
from fishbowl_link.transport.exceptions import (
    FishbowlConnectionError,
    RequestCancelledError,
    RequestTimeoutError,
    is_fatal_socket_error,
)
from fishbowl_link.transport.retry_policy import RetryPolicy, TimeoutConfig
from fishbowl_link.transport.socket_abstraction import TCPConnection
from fishbowl_link.transport.types import PendingRequest, ResponseMode

__all__ = [
    "ConnectionListener",
    "ConnectionManager",
    "ConnectionState",
    "FishbowlConnectionError",
    "PendingRequest",
    "RequestCancelledError",
    "RequestTimeoutError",
    "ResponseMode",
    "RetryPolicy",
    "TCPConnection",
    "TimeoutConfig",
    "is_fatal_socket_error",
]
