"""Telemetry helpers and metrics."""

from .metrics import (
    ANALYSIS_COUNTER,
    ANALYSIS_DURATION,
    CLEANUP_COUNTER,
    ERROR_COUNTER,
    POLL_ERROR_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    observe_request,
    record_analysis,
    record_cleanup,
    record_poll_error,
)

__all__ = [
    "ANALYSIS_COUNTER",
    "ANALYSIS_DURATION",
    "CLEANUP_COUNTER",
    "ERROR_COUNTER",
    "POLL_ERROR_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "observe_request",
    "record_analysis",
    "record_cleanup",
    "record_poll_error",
]
