"""Fishbowl protocol package - framing, envelopes, operations and transcoding.

Public API:
- Frame codec (encode_frame, FrameDecoder)
- Status codes (STATUS_SUCCESS, STATUS_INACTIVITY, status_message)
- Operation variants (Login, Logout, PartGet, ExecuteQuery, Import,
  ImportHeader, IssueSO, QuickShip, Custom)
"""

from fishbowl_link.protocol.frame_codec import FrameDecoder, encode_frame
from fishbowl_link.protocol.operations import (
    Custom,
    ExecuteQuery,
    Import,
    ImportHeader,
    IssueSO,
    Login,
    Logout,
    Operation,
    PartGet,
    QuickShip,
)
from fishbowl_link.protocol.status_codes import STATUS_INACTIVITY, STATUS_SUCCESS, status_message

__all__ = [
    # Frame codec
    "FrameDecoder",
    "encode_frame",
    # Status codes
    "STATUS_INACTIVITY",
    "STATUS_SUCCESS",
    "status_message",
    # Operations
    "Custom",
    "ExecuteQuery",
    "Import",
    "ImportHeader",
    "IssueSO",
    "Login",
    "Logout",
    "Operation",
    "PartGet",
    "QuickShip",
]
