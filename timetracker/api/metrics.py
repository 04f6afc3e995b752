from fastapi import APIRouter, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST, CollectorRegistry

router = APIRouter()

registry = CollectorRegistry()

auth_failed_logins = Counter(
    'timetracker_auth_failed_logins_total',
    'Total number of failed login attempts',
    registry=registry
)

auth_token_errors = Counter(
    'timetracker_auth_token_errors_total',
    'Total number of rejected bearer tokens',
    registry=registry
)

timer_sessions_started = Counter(
    'timetracker_timer_sessions_started_total',
    'Total number of timer sessions started',
    registry=registry
)

timer_sessions_stopped = Counter(
    'timetracker_timer_sessions_stopped_total',
    'Total number of timer sessions stopped',
    registry=registry
)

timer_sessions_deleted = Counter(
    'timetracker_timer_sessions_deleted_total',
    'Total number of timer sessions deleted',
    registry=registry
)

timer_start_conflicts = Counter(
    'timetracker_timer_start_conflicts_total',
    'Start requests rejected because a session was already active',
    registry=registry
)

http_requests_total = Counter(
    'timetracker_http_requests_total',
    'Total number of HTTP requests',
    labelnames=['method', 'endpoint', 'status'],
    registry=registry
)

http_request_duration = Histogram(
    'timetracker_http_request_duration_seconds',
    'HTTP request duration in seconds',
    labelnames=['method', 'endpoint'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=registry
)

@router.get("/metrics")
async def get_metrics():
    """
    Prometheus metrics endpoint.
    Exposes application metrics in Prometheus text format.
    """
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
