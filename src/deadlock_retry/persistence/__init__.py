"""
Connection layer.

- connection.py: TransactionalConnection protocol and the SQLAlchemy
  Session adapter used by the retry controller

Diagnostic statements run on a separate pooled connection so they never
join the caller's in-flight transaction.
"""

from deadlock_retry.persistence.connection import (
    SessionConnection,
    TransactionalConnection,
)

__all__ = [
    "SessionConnection",
    "TransactionalConnection",
]
