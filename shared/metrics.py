"""
Shared metrics configuration for the product revalidation bridge.
"""

from typing import Dict, Any, Optional

from prometheus_client import Counter, Histogram, Info, CollectorRegistry


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its registry so several service instances (tests,
    multiple apps in one process) never collide on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        # Service-specific metrics
        if self.service_name == "revalidation":
            self._setup_gateway_metrics()
        elif self.service_name == "notifier":
            self._setup_notifier_metrics()

    def _setup_gateway_metrics(self):
        """Set up revalidation gateway metrics."""
        self._metrics["revalidation_requests_total"] = Counter(
            "revalidation_requests_total",
            "Total revalidation requests by final status",
            ["status"],
            registry=self.registry
        )

        self._metrics["revalidation_paths_invalidated_total"] = Counter(
            "revalidation_paths_invalidated_total",
            "Total path specs invalidated",
            ["tag"],
            registry=self.registry
        )

        self._metrics["revalidation_tags_skipped_total"] = Counter(
            "revalidation_tags_skipped_total",
            "Total unknown tags skipped",
            registry=self.registry
        )

        self._metrics["revalidation_duration_seconds"] = Histogram(
            "revalidation_duration_seconds",
            "Time spent processing a revalidation request",
            registry=self.registry
        )

    def _setup_notifier_metrics(self):
        """Set up notifier metrics."""
        self._metrics["revalidation_notifications_total"] = Counter(
            "revalidation_notifications_total",
            "Total outbound revalidation notifications by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["events_received_total"] = Counter(
            "events_received_total",
            "Total product mutation events received",
            ["event"],
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def increment_counter(self, metric_name: str, amount: float = 1, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).inc(amount)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).observe(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
