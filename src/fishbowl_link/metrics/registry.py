"""Prometheus metrics registry for the Fishbowl client."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

# Request metrics
fishbowl_requests_total: Final = Counter(  # type: ignore[assignment]
    "fishbowl_requests_total",
    "Total requests completed",
    ["operation", "outcome"],
)

fishbowl_request_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "fishbowl_request_latency_seconds",
    "Time from dispatch to classified response in seconds",
    ["operation"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 15.0, 60.0),
)

fishbowl_queue_depth: Final = Gauge(  # type: ignore[assignment]
    "fishbowl_queue_depth",
    "Requests waiting behind the in-flight request",
)

fishbowl_request_resubmit_total: Final = Counter(  # type: ignore[assignment]
    "fishbowl_request_resubmit_total",
    "Requests re-queued after session expiry",
    ["operation"],
)

# Frame metrics
fishbowl_frames_received_total: Final = Counter(  # type: ignore[assignment]
    "fishbowl_frames_received_total",
    "Total complete frames received",
)

fishbowl_decode_errors_total: Final = Counter(  # type: ignore[assignment]
    "fishbowl_decode_errors_total",
    "Total frame or response decode errors",
    ["reason"],
)

# Connection metrics
fishbowl_connection_state: Final = Gauge(  # type: ignore[assignment]
    "fishbowl_connection_state",
    "Current connection state",
    ["host", "state"],
)

fishbowl_reconnection_total: Final = Counter(  # type: ignore[assignment]
    "fishbowl_reconnection_total",
    "Total reconnection attempts",
    ["host", "reason"],
)

fishbowl_connection_errors_total: Final = Counter(  # type: ignore[assignment]
    "fishbowl_connection_errors_total",
    "Total connection errors",
    ["host", "kind"],
)

# Session metrics
fishbowl_session_events_total: Final = Counter(  # type: ignore[assignment]
    "fishbowl_session_events_total",
    "Login, logout and session expiry events",
    ["event"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()

_CONNECTION_STATES = ("disconnected", "connecting", "connected")


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_request(operation: str, outcome: str) -> None:
    """Record a completed request."""
    fishbowl_requests_total.labels(operation=operation, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_request_latency(operation: str, latency_seconds: float) -> None:
    """Record request latency."""
    fishbowl_request_latency_seconds.labels(operation=operation).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_queue_depth(depth: int) -> None:
    """Record queue depth."""
    fishbowl_queue_depth.set(depth)  # type: ignore[no-untyped-call]


def record_resubmit(operation: str) -> None:
    """Record a request put back in the queue."""
    fishbowl_request_resubmit_total.labels(operation=operation).inc()  # type: ignore[no-untyped-call]


def record_frame_received() -> None:
    """Record a complete frame."""
    fishbowl_frames_received_total.inc()  # type: ignore[no-untyped-call]


def record_decode_error(reason: str) -> None:
    """Record a decode error."""
    fishbowl_decode_errors_total.labels(reason=reason).inc()  # type: ignore[no-untyped-call]


def record_connection_state(host: str, state: str) -> None:
    """Record connection state change."""
    # Set gauge to 1 for current state, 0 for all others
    for s in _CONNECTION_STATES:
        value = 1 if s == state else 0
        fishbowl_connection_state.labels(host=host, state=s).set(value)  # type: ignore[no-untyped-call]


def record_reconnection(host: str, reason: str) -> None:
    """Record a reconnection attempt."""
    fishbowl_reconnection_total.labels(host=host, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_connection_error(host: str, kind: str) -> None:
    """Record a fatal or transient connection error."""
    fishbowl_connection_errors_total.labels(host=host, kind=kind).inc()  # type: ignore[no-untyped-call]


def record_session_event(event: str) -> None:
    """Record a login/logout/expiry event."""
    fishbowl_session_events_total.labels(event=event).inc()  # type: ignore[no-untyped-call]
