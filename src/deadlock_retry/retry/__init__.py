"""
Retry decision engine for contended transactions.

This package decides whether a failed transaction is re-run:

1. **ErrorClassifier**: transient contention error or fatal error
2. **Nesting exclusion**: never retry inside an outer transaction
3. **BackoffSchedule**: 0, 1, 2, 4, 8, 16, 32 seconds, capped at 32
4. **DiagnosticsProbe**: one-time check for engine deadlock diagnostics

Main Components:
    - RetryController: Runs an operation and re-runs it on transient failure
    - ErrorClassifier: Message-signature based classification
    - BackoffSchedule: Attempt-indexed pause table
    - DiagnosticsProbe / DiagnosticsCache: Process-wide diagnostics command
    - RetryCancelled: Raised when a caller cancels during a pause

Usage:
    >>> from deadlock_retry.retry import RetryController
    >>> controller = RetryController(settings)
    >>> result = controller.run(operation, connection)
"""

from deadlock_retry.retry.backoff import BackoffSchedule
from deadlock_retry.retry.classifier import ErrorClass, ErrorClassifier
from deadlock_retry.retry.controller import RetryController, get_retry_controller
from deadlock_retry.retry.diagnostics import (
    DiagnosticsCache,
    DiagnosticsCommand,
    DiagnosticsProbe,
    DiagnosticsState,
    get_diagnostics_cache,
)
from deadlock_retry.retry.exceptions import RetryCancelled

__all__ = [
    "RetryController",
    "get_retry_controller",
    "ErrorClass",
    "ErrorClassifier",
    "BackoffSchedule",
    "DiagnosticsCache",
    "DiagnosticsCommand",
    "DiagnosticsProbe",
    "DiagnosticsState",
    "get_diagnostics_cache",
    "RetryCancelled",
]
