"""Unit tests for metrics registry."""

from __future__ import annotations

from unittest.mock import patch

from fishbowl_link.metrics import registry


def sample_value(metric, labels: dict[str, str], suffix: str = "_total") -> float | None:
    for family in metric.collect():
        for s in family.samples:
            if s.name.endswith(suffix) and s.labels == labels:
                return s.value
    return None


class TestRequestMetrics:
    def test_record_request(self) -> None:
        before = sample_value(registry.fishbowl_requests_total, {"operation": "PartGet", "outcome": "ok"}) or 0.0

        registry.record_request("PartGet", "ok")

        after = sample_value(registry.fishbowl_requests_total, {"operation": "PartGet", "outcome": "ok"})
        assert after == before + 1

    def test_record_request_latency(self) -> None:
        registry.record_request_latency("ExecuteQuery", 0.2)

        count = sample_value(registry.fishbowl_request_latency_seconds, {"operation": "ExecuteQuery"}, "_count")
        assert count is not None and count >= 1

    def test_record_queue_depth(self) -> None:
        registry.record_queue_depth(4)

        assert sample_value(registry.fishbowl_queue_depth, {}, "fishbowl_queue_depth") == 4.0

    def test_record_resubmit(self) -> None:
        registry.record_resubmit("IssueSO")

        assert sample_value(registry.fishbowl_request_resubmit_total, {"operation": "IssueSO"}) is not None


class TestConnectionMetrics:
    def test_record_connection_state(self) -> None:
        registry.record_connection_state("fb1", "connected")

        gauge = registry.fishbowl_connection_state
        assert sample_value(gauge, {"host": "fb1", "state": "connected"}, "state") == 1.0
        assert sample_value(gauge, {"host": "fb1", "state": "disconnected"}, "state") == 0.0
        assert sample_value(gauge, {"host": "fb1", "state": "connecting"}, "state") == 0.0

    def test_record_connection_error(self) -> None:
        registry.record_connection_error("fb1", "fatal")

        assert sample_value(registry.fishbowl_connection_errors_total, {"host": "fb1", "kind": "fatal"}) is not None

    def test_record_decode_error(self) -> None:
        registry.record_decode_error("invalid_json")

        assert sample_value(registry.fishbowl_decode_errors_total, {"reason": "invalid_json"}) is not None


class TestMetricsServer:
    def test_start_metrics_server_is_idempotent(self) -> None:
        with (
            patch.object(registry, "_server_state", {"started": False}),
            patch.object(registry, "start_http_server") as start,
        ):
            registry.start_metrics_server(9500)
            registry.start_metrics_server(9500)

        start.assert_called_once_with(9500)
