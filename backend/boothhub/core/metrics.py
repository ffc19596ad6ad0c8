"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# HTTP metrics
http_requests = Counter(
    'http_requests_total',
    'HTTP requests by route template',
    ['method', 'route', 'status']
)

http_request_latency = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency by route template',
    ['method', 'route'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Reservation metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total booth reservation attempts',
    ['outcome']  # success, reserved, unavailable, rejected, error
)

reservation_latency = Histogram(
    'reservation_latency_seconds',
    'Reservation request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

reservation_transitions = Counter(
    'reservation_transitions_total',
    'Reservation state transitions',
    ['status']  # confirmed, cancelled, expired
)

# Admission control metrics
admission_requests = Counter(
    'admission_requests_total',
    'Total admission control requests',
    ['result']  # admitted, rejected
)

# Payment metrics
payment_outcomes = Counter(
    'payment_outcomes_total',
    'Payment lifecycle outcomes',
    ['outcome']  # initiated, completed, failed, refunded, orphaned, processor_error
)

webhook_events = Counter(
    'webhook_events_total',
    'Inbound payment processor webhook events',
    ['event_type', 'result']  # handled, ignored, rejected
)

# Event bus / realtime
event_handler_failures = Counter(
    'event_bus_handler_failures_total',
    'Event bus subscriber failures',
    ['topic']
)

websocket_connections = Gauge(
    'websocket_connections',
    'Open real-time websocket connections'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['namespace', 'result']  # hit, miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)

redis_circuit_breaker_open = Gauge(
    'redis_circuit_breaker_open',
    'Redis circuit breaker state (1=open, 0=closed)'
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation_attempt(outcome: str):
    reservation_attempts.labels(outcome=outcome).inc()


def record_admission(admitted: bool):
    result = "admitted" if admitted else "rejected"
    admission_requests.labels(result=result).inc()


def record_payment(outcome: str):
    payment_outcomes.labels(outcome=outcome).inc()


def record_webhook(event_type: str, result: str):
    webhook_events.labels(event_type=event_type, result=result).inc()


def record_cache_operation(namespace: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(namespace=namespace, result=result).inc()


def record_http_request(method: str, route: str, status: int, seconds: float):
    http_requests.labels(method=method, route=route, status=str(status)).inc()
    http_request_latency.labels(method=method, route=route).observe(seconds)
