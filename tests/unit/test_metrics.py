"""Unit tests for refresh metrics."""

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from tgsync.lib.metrics import RefreshMetrics, RefreshRecord
from tgsync.services.session_refresh import SessionRefreshOrchestrator


@pytest.fixture
def reader():
    return InMemoryMetricReader()


@pytest.fixture
def refresh_metrics(reader):
    provider = MeterProvider(metric_readers=[reader])
    return RefreshMetrics(provider.get_meter("test"))


def collect(reader):
    """Map metric name to its data points."""
    points = {}
    data = reader.get_metrics_data()
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                points[metric.name] = list(metric.data.data_points)
    return points


class TestRefreshMetrics:
    """Test metric recording."""

    def test_default_meter_is_noop(self):
        """Test metrics work without a configured provider."""
        metrics = RefreshMetrics()
        metrics.record_request("get_self")
        metrics.record_refresh(RefreshRecord(operation="refresh_all", duration_ms=1.0, success=True))

    def test_refresh_records(self, refresh_metrics, reader):
        """Test refresh counters and durations carry outcome labels."""
        refresh_metrics.record_refresh(RefreshRecord(
            operation="refresh_all", duration_ms=12.5, success=False, error_type="UpstreamRequestFailed"
        ))

        points = collect(reader)
        total = points["tgsync_refresh_total"][0]
        assert total.value == 1
        assert total.attributes == {
            "operation": "refresh_all", "success": "false", "error_type": "UpstreamRequestFailed"
        }
        assert points["tgsync_refresh_duration_ms"][0].sum == 12.5

    def test_orchestrator_counts_requests(self, refresh_metrics, reader, transport, dialog_payload):
        """Test the orchestrator records requests, failures and dropped chats."""
        orchestrator = SessionRefreshOrchestrator(transport, metrics=refresh_metrics)
        orchestrator.refresh_chats()
        transport.reply("dialog_list", dialog_payload)
        transport.reply("chat_info", None, success=False, args=["chat#1"])
        transport.reply("chat_info", None, success=False, args=["chat#2"])

        points = collect(reader)
        requests = {point.attributes["command"]: point.value for point in points["tgsync_requests_total"]}
        failures = {point.attributes["command"]: point.value for point in points["tgsync_request_failures_total"]}

        assert requests == {"dialog_list": 1, "chat_info": 2}
        assert failures == {"chat_info": 2}
        assert points["tgsync_chats_dropped_total"][0].value == 2
