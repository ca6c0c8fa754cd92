"""Custom exception types for Fishbowl protocol errors.

This module defines the exception hierarchy for protocol-related errors,
following the "No Nullability" principle where errors raise exceptions
instead of returning None.
"""

from __future__ import annotations


class FishbowlError(Exception):
    """Base exception for everything raised by fishbowl_link."""


class FishbowlProtocolError(FishbowlError):
    """Base exception for all Fishbowl protocol errors.

    All protocol-related exceptions inherit from this base class,
    enabling catch-all error handling when needed while maintaining
    specific exception types for detailed handling.
    """


class FrameDecodeError(FishbowlProtocolError):
    """TCP stream framing error.

    Raised by FrameDecoder when the declared frame length cannot be honoured
    (oversized or otherwise corrupt length word). The byte stream is no longer
    aligned after this, so the connection has to be reset.

    Attributes:
        reason: Specific failure reason (e.g., "frame_too_large")
        buffer_size: Declared or buffered size when error occurred
    """

    def __init__(self, reason: str, buffer_size: int = 0):
        self.reason = reason
        self.buffer_size = buffer_size
        super().__init__(f"Frame decode failed: {reason}")


class ResponseDecodeError(FishbowlProtocolError):
    """A complete frame arrived but its payload is not a valid response envelope.

    Attributes:
        reason: Specific failure reason (e.g., "invalid_json", "missing_envelope")
        data_preview: First 64 characters of the payload (keeps tickets out of logs)
    """

    def __init__(self, reason: str, data: str = ""):
        self.reason = reason
        self.data_preview = data[:64] if data else ""
        super().__init__(f"Response decode failed: {reason}")


class FishbowlStatusError(FishbowlProtocolError):
    """Server answered with a non-success status code.

    Raised for both the outer envelope status and the inner operation status.

    Attributes:
        code: Numeric Fishbowl status code
        message: Server-supplied message, or the static table message
        response_type: Name of the response container (e.g. "PartGetRs"), if any
    """

    def __init__(self, code: int, message: str, response_type: str | None = None):
        self.code = code
        self.message = message
        self.response_type = response_type
        super().__init__(f"Fishbowl status {code}: {message}")


class InvalidOperationError(FishbowlProtocolError):
    """Operation arguments cannot be turned into a request body."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid operation: {reason}")
