"""Monitoring and metrics instrumentation for transaction retry.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from deadlock_retry.monitoring.metrics import (
    diagnostics_probe_total,
    transaction_backoff_seconds,
    transaction_failures_total,
    transaction_retries_total,
)

__all__ = [
    "transaction_retries_total",
    "transaction_failures_total",
    "transaction_backoff_seconds",
    "diagnostics_probe_total",
]
