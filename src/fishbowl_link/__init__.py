"""Async client for the Fishbowl Inventory JSON-over-TCP API."""

__version__ = "0.1.0"

from fishbowl_link.client import FishbowlClient  # noqa: E402
from fishbowl_link.config import FishbowlConfig  # noqa: E402
from fishbowl_link.protocol.exceptions import (  # noqa: E402
    FishbowlError,
    FishbowlProtocolError,
    FishbowlStatusError,
    FrameDecodeError,
    InvalidOperationError,
    ResponseDecodeError,
)
from fishbowl_link.session import SessionPhase  # noqa: E402
from fishbowl_link.transport.exceptions import (  # noqa: E402
    FishbowlConnectionError,
    RequestCancelledError,
    RequestTimeoutError,
)
from fishbowl_link.transport.types import ResponseMode  # noqa: E402

__all__ = [
    "FishbowlClient",
    "FishbowlConfig",
    "FishbowlConnectionError",
    "FishbowlError",
    "FishbowlProtocolError",
    "FishbowlStatusError",
    "FrameDecodeError",
    "InvalidOperationError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "ResponseDecodeError",
    "ResponseMode",
    "SessionPhase",
    "__version__",
]
