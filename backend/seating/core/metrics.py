"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_operations = Counter(
    'reservation_operations_total',
    'Reservation operations handled by the coordinator',
    ['operation', 'result']  # create/update/delete, ok/not_found/conflict
)

reservation_latency = Histogram(
    'reservation_operation_latency_seconds',
    'Time spent inside the coordinator write lock',
    ['operation'],
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5]
)

# Allocation metrics
seats_allocated = Counter(
    'seats_allocated_total',
    'Seats returned by the allocator',
    ['rule']  # full_table, duo, random
)

allocation_shortfalls = Counter(
    'allocation_shortfalls_total',
    'Allocations that returned fewer seats than requested'
)

# Store metrics
store_resets = Counter(
    'store_resets_total',
    'Persisted records discarded as malformed and reset to empty',
    ['record']
)

seat_states = Gauge(
    'seat_states',
    'Seats per state after the last committed write',
    ['state']  # free, user, admin
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
def record_reservation_operation(operation: str, result: str):
    """Record coordinator operation. Result: ok, not_found, conflict, rejected"""
    reservation_operations.labels(operation=operation, result=result).inc()

def record_allocation(rule: str, requested: int, returned: int):
    """Record allocator output and any shortfall."""
    if returned:
        seats_allocated.labels(rule=rule).inc(returned)
    if returned < requested:
        allocation_shortfalls.inc()

def record_store_reset(record: str):
    """Record a malformed blob that was replaced by an empty collection."""
    store_resets.labels(record=record).inc()

def record_seat_states(free: int, user: int, admin: int):
    seat_states.labels(state="free").set(free)
    seat_states.labels(state="user").set(user)
    seat_states.labels(state="admin").set(admin)

# HTTP metrics
http_requests = Counter(
    'http_requests_total',
    'HTTP requests by route template and status class',
    ['method', 'route', 'status']  # status: 2xx, 4xx, 5xx
)

http_latency = Histogram(
    'http_request_latency_seconds',
    'HTTP request latency by route template',
    ['method', 'route'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)


def record_http_request(method: str, route: str, status_code: int, seconds: float):
    http_requests.labels(method=method, route=route, status=f"{status_code // 100}xx").inc()
    http_latency.labels(method=method, route=route).observe(seconds)
