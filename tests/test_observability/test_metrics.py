"""Tests for Prometheus metrics."""

from __future__ import annotations

from prometheus_client import REGISTRY

from voxmenu.observability.metrics import (
    get_content_type,
    get_metrics,
    record_call_metrics,
    record_external_call,
)


def sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetricsModule:
    """Tests for metrics module functions."""

    def test_get_metrics_returns_bytes(self) -> None:
        assert isinstance(get_metrics(), bytes)

    def test_get_content_type(self) -> None:
        content_type = get_content_type()
        assert "text/plain" in content_type or "text/openmetrics" in content_type

    def test_record_call_metrics(self) -> None:
        before = sample("voxmenu_call_total", outcome="completed")

        record_call_metrics(outcome="completed", duration_seconds=12.5)

        assert sample("voxmenu_call_total", outcome="completed") == before + 1

    def test_record_external_failure(self) -> None:
        before = sample("voxmenu_external_failures_total", service="weather")

        record_external_call("weather", 150.0, ok=False)
        record_external_call("weather", 90.0)

        assert sample("voxmenu_external_failures_total", service="weather") == before + 1
        assert sample("voxmenu_external_latency_seconds_count", service="weather") >= 2

    def test_metric_names_exposed(self) -> None:
        output = get_metrics().decode()

        assert "voxmenu_active_calls" in output
        assert "voxmenu_dtmf_accepted_total" in output
