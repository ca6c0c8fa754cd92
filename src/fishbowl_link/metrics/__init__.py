"""Metrics module."""

from .registry import (
    record_connection_error,
    record_connection_state,
    record_decode_error,
    record_frame_received,
    record_queue_depth,
    record_reconnection,
    record_request,
    record_request_latency,
    record_resubmit,
    record_session_event,
    start_metrics_server,
)

__all__ = [
    "record_connection_error",
    "record_connection_state",
    "record_decode_error",
    "record_frame_received",
    "record_queue_depth",
    "record_reconnection",
    "record_request",
    "record_request_latency",
    "record_resubmit",
    "record_session_event",
    "start_metrics_server",
]
