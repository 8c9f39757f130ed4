"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_transitions = Counter(
    'booking_transitions_total',
    'Booking status transition attempts',
    ['to_status', 'outcome']  # applied, ignored, capacity, conflict
)

inventory_commit_conflicts = Counter(
    'inventory_commit_conflicts_total',
    'Conditional ticket commits rejected for insufficient inventory'
)

# Payment gateway metrics
stk_push_requests = Counter(
    'mpesa_stk_push_requests_total',
    'STK push initiation requests',
    ['outcome']  # accepted, rejected, error
)

stk_push_latency = Histogram(
    'mpesa_stk_push_latency_seconds',
    'Latency of token fetch plus STK push submission',
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0]
)

mpesa_callbacks = Counter(
    'mpesa_callbacks_total',
    'M-Pesa callbacks received',
    ['outcome']  # completed, failed, missing_receipt, malformed, unknown_payment, ignored, error
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_transition(to_status: str, outcome: str):
    booking_transitions.labels(to_status=to_status, outcome=outcome).inc()


def record_stk_push(outcome: str):
    stk_push_requests.labels(outcome=outcome).inc()


def record_callback(outcome: str):
    mpesa_callbacks.labels(outcome=outcome).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
