"""Business metrics for Greenlight."""

from opentelemetry import metrics

from .logging_config import get_logger

logger = get_logger(__name__)

meter = metrics.get_meter(__name__)

# HTTP Request Metrics
http_request_duration = meter.create_histogram(
    name="http_request_duration_seconds",
    description="Duration of HTTP requests in seconds",
    unit="s",
)

http_requests_total = meter.create_counter(
    name="http_requests_total",
    description="Total number of HTTP requests",
)

http_request_errors = meter.create_counter(
    name="http_request_errors_total",
    description="Total number of HTTP request errors",
)

rate_limited_total = meter.create_counter(
    name="rate_limited_requests_total",
    description="Requests rejected by the rate limiter",
)

# Business Metrics
movies_created_total = meter.create_counter(
    name="movies_created_total",
    description="Total number of movies created",
)

edit_conflicts_total = meter.create_counter(
    name="edit_conflicts_total",
    description="Updates rejected because of a stale version",
)

translations_written_total = meter.create_counter(
    name="translations_written_total",
    description="Category and item translations written",
)

background_tasks_total = meter.create_counter(
    name="background_tasks_total",
    description="Background tasks dispatched",
)


def record_http_request(method: str, endpoint: str, status_code: int, duration: float):
    """Record HTTP request metrics."""
    labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}

    http_request_duration.record(duration, labels)
    http_requests_total.add(1, labels)

    if status_code >= 400:
        http_request_errors.add(1, labels)


def record_rate_limited():
    rate_limited_total.add(1)


def record_movie_created():
    movies_created_total.add(1)


def record_edit_conflict(resource: str):
    edit_conflicts_total.add(1, {"resource": resource})


def record_translation_written(entity: str, language: str):
    translations_written_total.add(1, {"entity": entity, "language": language})


def record_background_task(task: str):
    background_tasks_total.add(1, {"task": task})
