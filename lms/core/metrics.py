"""Application metrics using the Prometheus client library.

Every metric the service exposes is declared here, so this module is
the inventory.  Owners import the specific metric and increment or
observe it at the point of action.

  Counters:   monotonically increasing totals (requests, logins,
               enrollments, tenant connections opened).  Use rate().
  Gauges:     current state that moves both ways (in-flight requests,
               tenant handles held in the registry).
  Histograms: latency distributions; percentiles come from
               histogram_quantile() over the bucket series.

Prometheus pulls these from GET /metrics.
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
    # Tenant resolution on a cold cache adds a connect + create_all, so the
    # upper buckets are wider than a single-database service would need.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Tenancy
# ---------------------------------------------------------------------------

TENANT_CONNECTIONS_OPENED = Counter(
    "tenant_connections_opened_total",
    "Tenant database handles opened by the registry",
    ["outcome"],  # "ok" or "error"
)

TENANT_CONNECTIONS_CACHED = Gauge(
    "tenant_connections_cached",
    "Tenant database handles currently held by the registry",
)

# ---------------------------------------------------------------------------
# Application-specific metrics
# ---------------------------------------------------------------------------

LOGIN_ATTEMPTS = Counter(
    "login_attempts_total",
    "Login attempts by realm and outcome",
    ["realm", "outcome"],  # realm: "org", "educator", "superadmin"
)

LOGIN_THROTTLED = Counter(
    "login_throttled_total",
    "Login attempts rejected by the throttle (429s)",
    ["realm"],
)

ENROLLMENTS = Counter(
    "enrollments_total",
    "Enrollment attempts by source and outcome",
    ["source", "outcome"],  # source: "admin" or "self"; outcome: "ok" or an error code
)
