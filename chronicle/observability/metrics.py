"""Prometheus metrics for Chronicle.

Counts appends, conflicts, verification outcomes and exported rows.
"""

from prometheus_client import Counter, Histogram, start_http_server

# Append metrics
AUDIT_APPENDS = Counter(
    "chronicle_audit_appends_total",
    "Total number of audit append attempts",
    labelnames=["event_type", "outcome"],
)

AUDIT_APPEND_LATENCY = Histogram(
    "chronicle_audit_append_latency_seconds",
    "Time spent inside the append critical section",
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

AUDIT_APPEND_CONFLICTS = Counter(
    "chronicle_audit_append_conflicts_total",
    "Appends rejected by the store because the assumed tail was stale",
)

# Verification metrics
AUDIT_VERIFICATIONS = Counter(
    "chronicle_audit_verifications_total",
    "Total number of integrity verification runs",
    labelnames=["result"],
)

AUDIT_INTEGRITY_BREAKS = Counter(
    "chronicle_audit_integrity_breaks_total",
    "Integrity breaks found by verification",
    labelnames=["kind"],
)

AUDIT_VERIFY_LATENCY = Histogram(
    "chronicle_audit_verify_latency_seconds",
    "Integrity verification latency in seconds",
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

# Export metrics
AUDIT_EXPORTED_ROWS = Counter(
    "chronicle_audit_exported_rows_total",
    "Rows rendered by audit exports",
)


# Ports with a running scrape endpoint
_serving_ports: set[int] = set()


def setup_metrics(enabled: bool = True, port: int = 9090) -> None:
    """Start the Prometheus scrape endpoint.

    Metrics are registered on import; this only exposes them over HTTP.
    Calling it again for a port already served is a no-op.
    """
    if enabled and port not in _serving_ports:
        start_http_server(port)
        _serving_ports.add(port)
