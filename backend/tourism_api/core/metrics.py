"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total reservation creation attempts',
    ['result']  # created, unavailable, invalid, error
)

reservation_create_latency = Histogram(
    'reservation_create_latency_seconds',
    'Reservation creation latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

reservation_transitions = Counter(
    'reservation_transitions_total',
    'Persisted reservation status transitions',
    ['from_status', 'to_status']
)

# Notification metrics
notifications = Counter(
    'notifications_total',
    'Transactional emails attempted',
    ['kind', 'result']  # confirmation/reminder, sent/failed/skipped
)

# Lock metrics
entity_lock_fallbacks = Counter(
    'entity_lock_fallbacks_total',
    'Redis entity lock failures that fell back to the in-process lock'
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_reservation_attempt(result: str):
    """Record creation attempt. Result: created, unavailable, invalid, error"""
    reservation_attempts.labels(result=result).inc()


def record_transition(from_status: str, to_status: str):
    reservation_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_notification(kind: str, result: str):
    """Record notification outcome. Result: sent, failed, skipped"""
    notifications.labels(kind=kind, result=result).inc()
