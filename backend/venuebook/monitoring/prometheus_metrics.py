"""
Prometheus metrics for the venue booking backend.

Service timings come from the @measure_operation decorator; the domain
counters below are incremented by the services that own each workflow.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "venuebook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "venuebook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "venuebook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

slot_lock_total = Counter(
    "venuebook_slot_lock_total",
    "Slot lock operations by backend and outcome",
    ["action", "backend", "outcome"],  # acquire|release, redis|local, success|timeout|error
    registry=REGISTRY,
)

booking_slot_conflicts_total = Counter(
    "venuebook_booking_slot_conflicts_total",
    "Booking requests rejected because the slot was taken",
    ["operation"],  # create | update
    registry=REGISTRY,
)

payment_reviews_total = Counter(
    "venuebook_payment_reviews_total",
    "Cashier payment decisions",
    ["decision", "payment_type"],  # verified | rejected
    registry=REGISTRY,
)

booking_maintenance_total = Counter(
    "venuebook_booking_maintenance_total",
    "Bookings touched by maintenance jobs",
    ["job"],  # expired | reminded
    registry=REGISTRY,
)

notifications_total = Counter(
    "venuebook_notifications_total",
    "Customer notifications by event and outcome",
    ["event_type", "status"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

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
            operation: Operation/method name (e.g., 'create_booking')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_slot_lock(action: str, backend: str, outcome: str) -> None:
        slot_lock_total.labels(action=action, backend=backend, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_slot_conflict(operation: str) -> None:
        booking_slot_conflicts_total.labels(operation=operation).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_payment_review(decision: str, payment_type: str) -> None:
        payment_reviews_total.labels(decision=decision, payment_type=payment_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_maintenance(job: str, count: int = 1) -> None:
        if count <= 0:
            return
        booking_maintenance_total.labels(job=job).inc(count)
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_notification(event_type: str, status: str) -> None:
        notifications_total.labels(event_type=event_type, status=status).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        Returns:
            Metrics data in Prometheus text format
        """
        now = monotonic()
        payload = PrometheusMetrics._cache_payload
        ts = PrometheusMetrics._cache_ts

        if payload is not None and ts is not None and (now - ts) <= PrometheusMetrics._cache_ttl_seconds:
            return payload

        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_payload = cast(bytes, generate_latest(REGISTRY))
            PrometheusMetrics._cache_ts = monotonic()
            return PrometheusMetrics._cache_payload

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
