"""
Prometheus metrics module for the trip booking platform.

Service operation timings come from the @measure_operation decorator;
the domain counters below track gateway outcomes, reconciliation cases
and notification delivery failures.
"""

from threading import Lock
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with default process metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "tripbooking_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

service_operations_total = Counter(
    "tripbooking_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "tripbooking_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

gateway_calls_total = Counter(
    "tripbooking_gateway_calls_total",
    "Payment gateway calls by outcome",
    ["outcome"],  # succeeded | failed | indeterminate
    registry=REGISTRY,
)

payment_reconciliation_required_total = Counter(
    "tripbooking_payment_reconciliation_required_total",
    "Charges confirmed by the gateway that the local ledger failed to record",
    registry=REGISTRY,
)

notification_failures_total = Counter(
    "tripbooking_notification_failures_total",
    "Notification jobs that failed to publish or deliver",
    ["stage"],  # publish | deliver
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _lock: Lock = Lock()

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation name (e.g., 'create_booking')
            duration: Operation duration in seconds
            status: 'success' or 'error'
            error_type: Exception class name if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_gateway_call(outcome: str) -> None:
        gateway_calls_total.labels(outcome=outcome).inc()

    @staticmethod
    def inc_reconciliation_required() -> None:
        payment_reconciliation_required_total.inc()

    @staticmethod
    def inc_notification_failure(stage: str) -> None:
        notification_failures_total.labels(stage=stage).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Metrics in Prometheus text exposition format."""
        with PrometheusMetrics._lock:
            return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
