"""Unit tests for telemetry setup."""

from unittest.mock import patch

import pytest

from tgsync.lib.observability import TelemetryManager


class TestTelemetryManager:
    """Test TelemetryManager lifecycle."""

    def test_requires_initialize(self):
        """Test tracer and meter access before initialization."""
        manager = TelemetryManager({})

        with pytest.raises(RuntimeError):
            manager.get_tracer()
        with pytest.raises(RuntimeError):
            manager.get_meter()

    @patch("tgsync.lib.observability.metrics.set_meter_provider")
    @patch("tgsync.lib.observability.trace.set_tracer_provider")
    @patch("tgsync.lib.observability.OTLPMetricExporter")
    @patch("tgsync.lib.observability.OTLPSpanExporter")
    @patch("tgsync.lib.observability.PeriodicExportingMetricReader")
    @patch("tgsync.lib.observability.BatchSpanProcessor")
    def test_initialize_and_shutdown(self, span_processor, metric_reader, span_exporter, metric_exporter,
                                     set_tracer_provider, set_meter_provider):
        """Test exporters are configured from the observability settings."""
        manager = TelemetryManager({"service_name": "tgsync-test", "otlp_endpoint": "http://collector:4317"})
        with patch("tgsync.lib.observability.MeterProvider") as meter_provider:
            manager.initialize()

            assert manager.initialized
            span_exporter.assert_called_once_with(endpoint="http://collector:4317", timeout=30)
            metric_exporter.assert_called_once_with(endpoint="http://collector:4317", timeout=30)
            set_tracer_provider.assert_called_once()
            set_meter_provider.assert_called_once_with(meter_provider.return_value)
            assert manager.get_tracer() is not None

            manager.shutdown()

        assert not manager.initialized
        meter_provider.return_value.shutdown.assert_called_once()
