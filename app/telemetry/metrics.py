"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

ANALYSIS_COUNTER = Counter(
    "analysis_requests_total",
    "Analysis requests by terminal outcome",
    ("outcome",),
)

ANALYSIS_DURATION = Histogram(
    "analysis_duration_seconds",
    "Wall time from dispatch to terminal outcome",
    buckets=(5.0, 10.0, 20.0, 30.0, 45.0, 60.0, 90.0, 120.0, 180.0, 240.0),
)

POLL_ERROR_COUNTER = Counter(
    "analysis_poll_errors_total",
    "Transient errors swallowed while polling the workflow backend",
    ("stage",),
)

CLEANUP_COUNTER = Counter(
    "analysis_cleanup_total",
    "Staged payload deletions by strategy and result",
    ("strategy", "result"),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def record_analysis(outcome: str, duration_seconds: float | None = None) -> None:
    """Count a finished analysis and, when dispatched, how long it took."""

    ANALYSIS_COUNTER.labels(outcome=outcome).inc()
    if duration_seconds is not None:
        ANALYSIS_DURATION.observe(max(duration_seconds, 0))


def record_poll_error(stage: str) -> None:
    POLL_ERROR_COUNTER.labels(stage=stage).inc()


def record_cleanup(strategy: str, result: str) -> None:
    CLEANUP_COUNTER.labels(strategy=strategy, result=result).inc()
