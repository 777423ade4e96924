"""
Prometheus metrics for the core banking adapter service.
Provides metrics for HTTP requests, vendor exchanges, retries and queue lifecycle.
"""
import re
import time

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response


# HTTP Request Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['route', 'method', 'status']
)

http_request_duration_ms = Histogram(
    'http_request_duration_ms',
    'HTTP request duration in milliseconds',
    ['route', 'method'],
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000)
)

# Core banking vendor metrics
core_banking_requests_total = Counter(
    'core_banking_requests_total',
    'Total number of HTTP attempts sent to core banking vendors',
    ['core_type', 'method', 'status']
)

core_banking_request_duration_ms = Histogram(
    'core_banking_request_duration_ms',
    'Core banking vendor attempt duration in milliseconds',
    ['core_type', 'method'],
    buckets=(10, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000)
)

core_banking_retries_total = Counter(
    'core_banking_retries_total',
    'Total number of core banking attempts that were retried',
    ['core_type', 'reason']
)

core_banking_exhausted_total = Counter(
    'core_banking_exhausted_total',
    'Total number of exchanges that exhausted every retry',
    ['core_type']
)

core_banking_exchanges_total = Counter(
    'core_banking_exchanges_total',
    'Total number of orchestrated exchanges by outcome',
    ['core_type', 'outcome']
)

# Queue / audit metrics
integration_queue_transitions_total = Counter(
    'integration_queue_transitions_total',
    'Total number of integration queue state transitions',
    ['status']
)

audit_records_total = Counter(
    'audit_records_total',
    'Total number of audit records written',
    ['action', 'severity']
)


class MetricsCollector:
    """Centralized metrics collection and management."""

    def __init__(self):
        self.start_time = time.time()

    def record_http_request(self, route: str, method: str, status_code: int, duration_ms: float):
        """Record HTTP request metrics."""
        normalized_route = self._normalize_route(route)

        http_requests_total.labels(
            route=normalized_route,
            method=method,
            status=str(status_code)
        ).inc()

        http_request_duration_ms.labels(
            route=normalized_route,
            method=method
        ).observe(duration_ms)

    def record_core_banking_request(self, core_type: str, method: str, status_code: int, latency_ms: float):
        """Record one vendor HTTP attempt. status_code 0 marks a transport failure."""
        core_banking_requests_total.labels(
            core_type=core_type,
            method=method,
            status=str(status_code)
        ).inc()

        core_banking_request_duration_ms.labels(
            core_type=core_type,
            method=method
        ).observe(latency_ms)

    def record_core_banking_retry(self, core_type: str, reason: str):
        core_banking_retries_total.labels(core_type=core_type, reason=reason).inc()

    def record_core_banking_exhausted(self, core_type: str):
        core_banking_exhausted_total.labels(core_type=core_type).inc()

    def record_exchange(self, core_type: str, success: bool):
        outcome = "success" if success else "failure"
        core_banking_exchanges_total.labels(core_type=core_type, outcome=outcome).inc()

    def record_queue_transition(self, status: str):
        integration_queue_transitions_total.labels(status=status).inc()

    def record_audit_record(self, action: str, severity: str):
        audit_records_total.labels(action=action, severity=severity).inc()

    def _normalize_route(self, route: str) -> str:
        """Normalize route for metrics by replacing dynamic segments."""
        # Replace UUIDs with placeholder
        route = re.sub(r'/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', '/{uuid}', route)

        # Replace numeric IDs with placeholder
        route = re.sub(r'/\d+', '/{id}', route)

        # Replace other long dynamic segments
        route = re.sub(r'/[a-zA-Z0-9_-]{20,}', '/{hash}', route)

        return route

    def get_metrics_response(self) -> Response:
        """Get Prometheus metrics in text format."""
        metrics_data = generate_latest()
        return Response(
            content=metrics_data,
            media_type=CONTENT_TYPE_LATEST
        )


# Global metrics collector instance
metrics = MetricsCollector()


def record_http_request(route: str, method: str, status_code: int, duration_ms: float):
    """Record HTTP request metrics."""
    metrics.record_http_request(route, method, status_code, duration_ms)
