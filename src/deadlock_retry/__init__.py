"""
Deadlock retry for database transactions.

Re-runs a transaction from scratch when the storage engine aborts it to
resolve contention (deadlock, "try restarting transaction"), while every
other failure reaches the caller unchanged:
- Message-signature classification of transient errors
- Deterministic exponential backoff capped at 32 seconds
- No retry inside an already-open outer transaction
- One-time, negatively cached probe for engine deadlock diagnostics

Architecture: RetryController over a TransactionalConnection (SQLAlchemy Session adapter)
"""

from deadlock_retry.persistence.connection import SessionConnection, TransactionalConnection
from deadlock_retry.retry import RetryCancelled, RetryController, get_retry_controller
from deadlock_retry.transaction import run_in_transaction

__version__ = "0.1.0"

__all__ = [
    "RetryController",
    "RetryCancelled",
    "SessionConnection",
    "TransactionalConnection",
    "get_retry_controller",
    "run_in_transaction",
]
