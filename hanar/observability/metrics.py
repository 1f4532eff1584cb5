"""
Metrics Collection with Prometheus.

Exposes marketplace and system metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from hanar.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    OPERATION = "operation"
    ERROR_TYPE = "error_type"
    TIER = "tier"


class HanarMetrics:
    """
    Centralized metrics for the Hanar API.

    Covers:
    - HTTP requests (rate, duration, errors)
    - Entitlement checks (rate, tier, outcome)
    - Pack renewals and item creation/deletion
    - Admin authorization decisions
    """

    def __init__(self) -> None:
        self.service_info = Info(
            "hanar_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "hanar_http_requests_total",
            "Total HTTP requests",
            [
                MetricLabels.ENDPOINT.value,
                MetricLabels.METHOD.value,
                MetricLabels.STATUS_CODE.value,
            ],
        )

        self.http_request_duration_seconds = Histogram(
            "hanar_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT.value, MetricLabels.METHOD.value],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "hanar_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            [MetricLabels.ENDPOINT.value, MetricLabels.METHOD.value],
        )

        # ====================================================================
        # Entitlement Metrics
        # ====================================================================
        self.entitlement_checks_total = Counter(
            "hanar_entitlement_checks_total",
            "Total listing entitlement checks",
            [MetricLabels.TIER.value, "can_add_more"],
        )

        self.entitlement_check_duration_seconds = Histogram(
            "hanar_entitlement_check_duration_seconds",
            "Entitlement check duration in seconds",
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5),
        )

        self.pack_renewals_total = Counter(
            "hanar_pack_renewals_total",
            "Total Casual Seller Pack renewals",
            ["success"],
        )

        # ====================================================================
        # Marketplace Item Metrics
        # ====================================================================
        self.items_created_total = Counter(
            "hanar_items_created_total",
            "Total marketplace items created",
            [MetricLabels.TIER.value],
        )

        self.items_rejected_total = Counter(
            "hanar_items_rejected_total",
            "Item creations rejected by the listing quota",
            [MetricLabels.TIER.value],
        )

        self.items_deleted_total = Counter(
            "hanar_items_deleted_total",
            "Total marketplace items deleted",
        )

        # ====================================================================
        # Admin Authorization Metrics
        # ====================================================================
        self.admin_decisions_total = Counter(
            "hanar_admin_decisions_total",
            "Admin authorization decisions",
            ["allowed"],
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "hanar_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE.value, MetricLabels.OPERATION.value],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_entitlement_check(self, tier: str, can_add_more: bool, duration: float) -> None:
        """Record entitlement check metrics."""
        self.entitlement_checks_total.labels(tier=tier, can_add_more=str(can_add_more)).inc()
        self.entitlement_check_duration_seconds.observe(duration)

    def record_pack_renewal(self, success: bool) -> None:
        self.pack_renewals_total.labels(success=str(success)).inc()

    def record_admin_decision(self, allowed: bool) -> None:
        self.admin_decisions_total.labels(allowed=str(allowed)).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = HanarMetrics()
