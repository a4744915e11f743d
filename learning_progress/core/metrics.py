"""Prometheus metric inventory.

Every metric the service exports is defined here; the modules that own
the behavior import and increment them at the point of action.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Progress core metrics
# ---------------------------------------------------------------------------

LESSON_COMPLETIONS = Counter(
    "lesson_completions_total",
    "Effective lesson completion writes (idempotent repeats not counted)",
    ["completed"],  # "true" or "false"
)

ACTIVITY_SECONDS = Counter(
    "activity_seconds_total",
    "Active seconds recorded through activity ticks",
)

STORE_ERRORS = Counter(
    "progress_store_errors_total",
    "Progress store operations that failed and were degraded",
    ["operation"],  # get|set|incr_by|scan
)
