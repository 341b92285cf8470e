"""Prometheus metrics, defined in one place.

HTTP metrics are filled in by MetricsMiddleware. The handshake counters are
incremented by app.services.signup_service at the point each outcome is
decided, so a dashboard can tell "provider rejected the code" apart from
"database refused the write" without reading logs.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # the callback includes a provider round-trip bounded by HTTP_TIMEOUT_SEC
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

CALLBACK_OUTCOMES = Counter(
    "signup_callbacks_total",
    "Authorization callbacks by outcome",
    ["outcome"],  # created|updated|exchange_error|datastore_error
)

FORM_SUBMISSIONS = Counter(
    "signup_form_submissions_total",
    "Accepted sign-up form submissions",
)
