"""
OpenTelemetry setup with OTLP exporters for tgsync.

Installs tracer and meter providers so refresh spans and RefreshMetrics
instruments are exported. Without initialization the OpenTelemetry API
falls back to no-op providers.
"""

import logging
from typing import Any, Dict, Optional

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased


logger = logging.getLogger(__name__)


class TelemetryManager:
    """Manages OpenTelemetry setup and lifecycle."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self._initialized = False
        self._tracer_provider: Optional[TracerProvider] = None
        self._meter_provider: Optional[MeterProvider] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Initialize OpenTelemetry with OTLP exporters."""
        if self._initialized:
            logger.warning("Telemetry already initialized")
            return

        resource = Resource.create({
            "service.name": self.config.get("service_name", "tgsync"),
            "service.version": self.config.get("service_version", "0.1.0"),
            "deployment.environment": self.config.get("environment", "development"),
            **self.config.get("resource_attributes", {})
        })
        endpoint = self.config.get("otlp_endpoint", "http://localhost:4317")
        timeout = self.config.get("export_timeout", 30)

        self._tracer_provider = TracerProvider(
            resource=resource,
            sampler=TraceIdRatioBased(self.config.get("trace_sampling_ratio", 1.0))
        )
        self._tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, timeout=timeout))
        )
        trace.set_tracer_provider(self._tracer_provider)

        metric_reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=endpoint, timeout=timeout),
            export_interval_millis=10000  # 10 seconds
        )
        self._meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
        metrics.set_meter_provider(self._meter_provider)

        self._initialized = True
        logger.info(f"OpenTelemetry initialized for service: {self.config.get('service_name', 'tgsync')}")

    def get_tracer(self) -> trace.Tracer:
        """Get a tracer for tgsync spans."""
        if not self._initialized:
            raise RuntimeError("Telemetry not initialized")
        return self._tracer_provider.get_tracer("tgsync")

    def get_meter(self) -> metrics.Meter:
        """Get a meter for tgsync instruments."""
        if not self._initialized:
            raise RuntimeError("Telemetry not initialized")
        return self._meter_provider.get_meter("tgsync")

    def shutdown(self) -> None:
        """Flush pending telemetry and shut the providers down."""
        if not self._initialized:
            return

        try:
            self._tracer_provider.shutdown()
            self._meter_provider.shutdown()
            logger.info("OpenTelemetry shutdown completed")
        finally:
            self._initialized = False
