"""
Metrics collection for daemon requests and session refreshes.

Uses OpenTelemetry metrics; without a configured meter provider every
instrument is a no-op.
"""

from dataclasses import dataclass
from typing import Optional

from opentelemetry import metrics


@dataclass
class RefreshRecord:
    """Summary of one finished refresh."""
    operation: str
    duration_ms: float
    success: bool
    contacts: int = 0
    chats: int = 0
    error_type: Optional[str] = None


class RefreshMetrics:
    """Collects request and refresh metrics."""

    def __init__(self, meter: Optional[metrics.Meter] = None):
        self.meter = meter or metrics.get_meter("tgsync")
        self._setup_instruments()

    def _setup_instruments(self) -> None:
        """Setup OpenTelemetry metric instruments."""
        self.requests_total = self.meter.create_counter(
            name="tgsync_requests_total",
            description="Requests sent to the daemon by command",
            unit="1"
        )

        self.request_failures = self.meter.create_counter(
            name="tgsync_request_failures_total",
            description="Failed replies by command",
            unit="1"
        )

        self.chats_dropped = self.meter.create_counter(
            name="tgsync_chats_dropped_total",
            description="Group chats omitted because chat_info failed",
            unit="1"
        )

        self.refresh_total = self.meter.create_counter(
            name="tgsync_refresh_total",
            description="Finished refreshes by operation and result",
            unit="1"
        )

        self.refresh_duration = self.meter.create_histogram(
            name="tgsync_refresh_duration_ms",
            description="Duration of refresh operations",
            unit="ms"
        )

    def record_request(self, command: str) -> None:
        self.requests_total.add(1, {"command": command})

    def record_request_failure(self, command: str) -> None:
        self.request_failures.add(1, {"command": command})

    def record_chat_dropped(self) -> None:
        self.chats_dropped.add(1)

    def record_refresh(self, record: RefreshRecord) -> None:
        """Record metrics for a finished refresh."""
        labels = {
            "operation": record.operation,
            "success": str(record.success).lower()
        }
        if record.error_type:
            labels["error_type"] = record.error_type

        self.refresh_total.add(1, labels)
        self.refresh_duration.record(record.duration_ms, labels)
