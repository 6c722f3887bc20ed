"""Custom Prometheus metrics for transaction retry.

These metrics are registered on the default prometheus_client registry and
are exposed by whatever exporter the host application runs.
Alert rules should be configured for:
- transaction_retries_total (sustained retry rate indicates hot rows or lock ordering bugs)
- transaction_failures_total{reason="exhausted"} (contention not resolving within the ceiling)
"""

from prometheus_client import Counter, Histogram

# === Retry Metrics ===

transaction_retries_total = Counter(
    "transaction_retries_total",
    "Total transaction re-executions after a transient contention error",
    ["engine"],
)
"""
Retry counter by database engine.

Labels:
- engine: Dialect name of the connection (mysql, mariadb, postgresql, sqlite, ...)

Alert thresholds:
- WARN: retry rate > 5% of committed transactions
- CRITICAL: retry rate > 20% of committed transactions
"""

transaction_failures_total = Counter(
    "transaction_failures_total",
    "Total transaction failures propagated to the caller by reason",
    ["reason"],
)
"""
Propagated failure counter by reason.

Labels:
- reason: fatal (not a contention error), nested (inside an outer transaction),
  exhausted (retry ceiling reached), cancelled (caller cancelled during backoff)
"""

transaction_backoff_seconds = Histogram(
    "transaction_backoff_seconds",
    "Backoff pause applied before re-executing a transaction",
    buckets=[0, 1, 2, 4, 8, 16, 32],
)
"""
Backoff pause histogram.

Buckets match the default backoff table so each bucket maps to one attempt.
"""

# === Diagnostics Metrics ===

diagnostics_probe_total = Counter(
    "diagnostics_probe_total",
    "Engine diagnostics probes by result",
    ["result"],
)
"""
Diagnostics probe counter.

Labels:
- result: available, unavailable

Expected to be incremented once per process.
"""
