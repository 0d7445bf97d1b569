from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "podproxy_requests_total",
    "Passthrough requests handled, by vendor and final status",
    ["method", "vendor", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "podproxy_request_duration_seconds",
    "Upstream round-trip latency for passthrough requests",
    ["vendor"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

ACTIVE_REQUESTS = Gauge(
    "podproxy_active_requests",
    "Passthrough requests currently waiting on an upstream",
)

UPSTREAM_ERRORS = Counter(
    "podproxy_upstream_errors_total",
    "Non-2xx responses relayed from a vendor",
    ["vendor", "status_code"],
)

TRANSPORT_FAILURES = Counter(
    "podproxy_transport_failures_total",
    "Upstream calls that failed before a response was received",
    ["vendor"],
)

MISSING_CREDENTIAL = Counter(
    "podproxy_missing_credential_total",
    "Passthrough requests refused because the vendor token is unset",
    ["vendor"],
)

RATE_LIMITED = Counter(
    "podproxy_rate_limited_total",
    "Requests rejected by rate limiter",
)
