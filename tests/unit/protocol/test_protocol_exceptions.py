"""Unit tests for protocol exceptions and the status code table."""

from __future__ import annotations

from fishbowl_link.protocol.exceptions import (
    FishbowlError,
    FishbowlProtocolError,
    FishbowlStatusError,
    FrameDecodeError,
    InvalidOperationError,
    ResponseDecodeError,
)
from fishbowl_link.protocol.status_codes import (
    STATUS_INACTIVITY,
    STATUS_SUCCESS,
    UNKNOWN_STATUS_MESSAGE,
    status_message,
)


class TestExceptionHierarchy:
    def test_protocol_errors_share_a_base(self):
        for error_type in (FrameDecodeError, ResponseDecodeError, FishbowlStatusError, InvalidOperationError):
            assert issubclass(error_type, FishbowlProtocolError)
        assert issubclass(FishbowlProtocolError, FishbowlError)


class TestFrameDecodeError:
    def test_reason_and_size(self):
        error = FrameDecodeError("frame_too_large", buffer_size=1024)
        assert error.reason == "frame_too_large"
        assert error.buffer_size == 1024
        assert "frame_too_large" in str(error)


class TestResponseDecodeError:
    def test_preview_truncated(self):
        error = ResponseDecodeError("invalid_json", "y" * 100)
        assert error.data_preview == "y" * 64

    def test_empty_preview(self):
        assert ResponseDecodeError("invalid_json").data_preview == ""


class TestFishbowlStatusError:
    def test_attributes_and_message(self):
        error = FishbowlStatusError(1120, "Invalid username or password.", "LoginRs")
        assert error.code == 1120
        assert error.message == "Invalid username or password."
        assert error.response_type == "LoginRs"
        assert str(error) == "Fishbowl status 1120: Invalid username or password."


class TestStatusCodes:
    def test_reserved_codes(self):
        assert STATUS_SUCCESS == 1000
        assert STATUS_INACTIVITY == 1010

    def test_known_code(self):
        assert status_message(1010) == "You have been logged off the server due to inactivity."

    def test_unknown_code(self):
        assert status_message(4242) == UNKNOWN_STATUS_MESSAGE
