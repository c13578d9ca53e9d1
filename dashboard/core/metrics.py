"""Prometheus metric inventory for the dashboard service.

Every metric the service records is declared here; the modules that own
the behaviour import the object and increment/observe it in place.

  HTTP layer (MetricsMiddleware)
    http_requests_total, http_request_duration_seconds, http_active_requests

  Import path (api/snapshots.py)
    snapshot_imports_total     reports appended, one per uploaded file
    snapshot_rows_ingested_total
    snapshot_deletions_total   by scope: "one" or "all"

  Analytics (api/analytics.py)
    analytics_compute_seconds  time spent in compute_analytics()
    cache_operations_total     read-through cache hit/miss
    csv_exports_total          by column mode
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP
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
# Snapshot lifecycle
# ---------------------------------------------------------------------------

SNAPSHOT_IMPORTS = Counter(
    "snapshot_imports_total",
    "Progress reports appended to the snapshot sequence",
)

ROWS_INGESTED = Counter(
    "snapshot_rows_ingested_total",
    "Raw report rows accepted across all imports",
)

SNAPSHOT_DELETIONS = Counter(
    "snapshot_deletions_total",
    "Snapshot deletions by scope",
    ["scope"],  # "one" or "all"
)

# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

ANALYTICS_DURATION = Histogram(
    "analytics_compute_seconds",
    "Wall time of one full analytics recomputation",
    # a few hundred learners per report is the common case
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)

CSV_EXPORTS = Counter(
    "csv_exports_total",
    "CSV exports by column mode",
    ["mode"],  # "compact" or "detailed"
)
