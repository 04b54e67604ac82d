"""Application metrics (Prometheus client library).

Every metric the service exposes is declared here so there is a single
inventory.  Modules import the metric they own and increment it at the
point of action.  Scraped from GET /metrics, which is itself guarded by
the admin API key.
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
# Authentication metrics
# ---------------------------------------------------------------------------

AUTH_DECISIONS = Counter(
    "auth_decisions_total",
    "Authentication/authorization decisions by outcome",
    # result: "allowed" | "rejected"
    # reason: AuthError.reason for rejections, guard name for allows
    ["result", "reason"],
)

TOKENS_ISSUED = Counter(
    "tokens_issued_total",
    "Session tokens minted by the TokenIssuer",
)

TOKEN_LEDGER_SIZE = Gauge(
    "token_ledger_size",
    "Number of tokens currently tracked by the in-memory ledger",
)
