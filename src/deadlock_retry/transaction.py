"""
Run a unit of work in a retried SQLAlchemy transaction.

``run_in_transaction`` is the opt-in call site wrapper: it opens the
transaction, runs the work inside it and hands the whole unit to a
RetryController. When the session already has a transaction open, the
work runs in a SAVEPOINT instead; a failure there leaves the outer
transaction open, so the controller propagates it rather than re-running
only the inner part.
"""

import threading
from collections.abc import Callable
from typing import Optional, TypeVar

from sqlalchemy.orm import Session

from deadlock_retry.persistence.connection import SessionConnection
from deadlock_retry.retry.controller import RetryController, get_retry_controller

T = TypeVar("T")


def run_in_transaction(
    session: Session,
    work: Callable[[Session], T],
    *,
    controller: Optional[RetryController] = None,
    ceiling: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> T:
    """
    Execute ``work(session)`` inside a transaction, retrying on contention.

    Args:
        session: SQLAlchemy Session to run the transaction on
        work: Unit of work; must be safe to run again from scratch
        controller: Retry controller (defaults to the shared one)
        ceiling: Maximum number of retries (defaults to MAX_RETRIES)
        cancel_event: Optional event that aborts retries during a pause

    Returns:
        Whatever ``work`` returns from the committed attempt
    """
    controller = controller if controller is not None else get_retry_controller()

    def attempt() -> T:
        scope = session.begin_nested() if session.in_transaction() else session.begin()
        with scope:
            return work(session)

    return controller.run(
        attempt,
        SessionConnection(session),
        ceiling=ceiling,
        cancel_event=cancel_event,
    )
