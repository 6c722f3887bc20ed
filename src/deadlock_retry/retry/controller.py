"""
Retry controller for transactions aborted by engine contention.

Engines such as InnoDB resolve a deadlock by rolling back one of the
conflicting transactions instead of blocking it. The conventional response
is to run the whole transaction again, which is what this controller does:

1. Run the protected operation.
2. On failure, propagate immediately if an outer transaction is still open
   on the connection (re-running only the inner part would break the outer
   unit of work).
3. Propagate immediately if the failure is not a transient contention error.
4. Propagate if the retry ceiling has been reached.
5. Otherwise log the attempt, pause per the backoff schedule and go to 1.

The caller always sees either the operation's own return value or the
exact exception raised by the last attempt.

Usage:
    controller = RetryController(settings)
    result = controller.run(lambda: transfer(session), SessionConnection(session))
"""

import contextlib
import functools
import threading
from collections.abc import Callable
from typing import Any, Optional, TypeVar

import structlog

from deadlock_retry.config import Settings
from deadlock_retry.config import settings as default_settings
from deadlock_retry.monitoring.metrics import (
    transaction_backoff_seconds,
    transaction_failures_total,
    transaction_retries_total,
)
from deadlock_retry.persistence.connection import TransactionalConnection
from deadlock_retry.retry.backoff import BackoffSchedule
from deadlock_retry.retry.classifier import ErrorClass, ErrorClassifier
from deadlock_retry.retry.diagnostics import DiagnosticsProbe
from deadlock_retry.retry.exceptions import RetryCancelled

T = TypeVar("T")

logger = structlog.get_logger(__name__)

STATUS_UNAVAILABLE = "unavailable"


class RetryController:
    """
    Re-run a transaction while it fails with transient contention errors.

    A controller holds no per-call state and can be shared between threads;
    the attempt counter lives on the stack of each ``run`` call.

    Attributes:
        settings: Retry settings
        classifier: Decides transient vs fatal
        backoff: Pause schedule between attempts
        diagnostics: One-time engine diagnostics probe
        max_retries: Default retry ceiling
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        classifier: Optional[ErrorClassifier] = None,
        backoff: Optional[BackoffSchedule] = None,
        diagnostics: Optional[DiagnosticsProbe] = None,
        logger: Optional[Any] = None,
    ):
        """
        Initialize retry controller.

        Collaborators not given are built from ``settings``.

        Args:
            settings: Retry settings (defaults to the global settings)
            classifier: Error classifier
            backoff: Backoff schedule
            diagnostics: Diagnostics probe (shares the process-wide cache)
            logger: structlog-compatible logger (defaults to this module's)
        """
        self.settings = settings if settings is not None else default_settings
        self.logger = logger if logger is not None else structlog.get_logger(__name__)
        self.classifier = classifier if classifier is not None else ErrorClassifier.from_settings(self.settings)
        self.backoff = backoff if backoff is not None else BackoffSchedule.from_settings(self.settings)
        self.diagnostics = (
            diagnostics if diagnostics is not None else DiagnosticsProbe(self.settings, logger=self.logger)
        )
        self.max_retries = self.settings.MAX_RETRIES

    def run(
        self,
        operation: Callable[[], T],
        connection: TransactionalConnection,
        ceiling: Optional[int] = None,
        is_nested: Optional[Callable[[], bool]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> T:
        """
        Execute ``operation`` with retry on transient contention errors.

        Args:
            operation: Zero-argument callable running the whole transaction
            connection: Connection the transaction runs on
            ceiling: Maximum number of retries (defaults to MAX_RETRIES)
            is_nested: Nesting check (defaults to open transactions != 0)
            cancel_event: Optional event that aborts the sequence during a pause

        Returns:
            Whatever ``operation`` returns

        Raises:
            Exception: The last attempt's own exception, unchanged
            RetryCancelled: ``cancel_event`` was set during a pause
        """
        if ceiling is None:
            ceiling = self.max_retries
        nested = is_nested or (lambda: connection.open_transactions() != 0)

        self.diagnostics.ensure_probed(connection)

        attempt = 0
        while True:
            try:
                with self._attempt_context(attempt):
                    return operation()
            except Exception as error:
                if nested():
                    transaction_failures_total.labels(reason="nested").inc()
                    raise

                if self.classifier.classify(error) is ErrorClass.FATAL:
                    transaction_failures_total.labels(reason="fatal").inc()
                    raise

                if attempt >= ceiling:
                    transaction_failures_total.labels(reason="exhausted").inc()
                    raise

                attempt += 1
                self._log_retry(attempt, ceiling, connection)
                self._pause(attempt, error, cancel_event)
                transaction_retries_total.labels(engine=connection.engine_name()).inc()

    def wrap(
        self,
        transaction: Callable[..., T],
        connection: TransactionalConnection,
        **run_kwargs: Any,
    ) -> Callable[..., T]:
        """
        Wrap a transaction-executing function so every call runs under ``run``.

        Args:
            transaction: Function that opens, runs and commits a transaction
            connection: Connection the transaction runs on
            **run_kwargs: Extra keyword arguments for ``run``

        Returns:
            Callable with the same signature as ``transaction``
        """

        @functools.wraps(transaction)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return self.run(lambda: transaction(*args, **kwargs), connection, **run_kwargs)

        return wrapper

    def _attempt_context(self, attempt: int) -> contextlib.AbstractContextManager:
        # Records emitted while a retried attempt runs, stdlib ones included, carry its number
        if attempt == 0:
            return contextlib.nullcontext()
        return structlog.contextvars.bound_contextvars(retry_tx_attempt=attempt)

    def _log_retry(self, attempt: int, ceiling: int, connection: TransactionalConnection) -> None:
        status = self.diagnostics.fetch_status(connection)
        self.logger.warning(
            "Retrying transaction after transient failure",
            retry_tx_attempt=attempt,
            retry_tx_max_attempts=ceiling,
            retry_tx_open_transactions=connection.open_transactions(),
            retry_tx_engine_status=status if status is not None else STATUS_UNAVAILABLE,
        )

    def _pause(self, attempt: int, error: Exception, cancel_event: Optional[threading.Event]) -> None:
        try:
            seconds = self.backoff.pause(attempt, cancel_event)
        except RetryCancelled as cancelled:
            transaction_failures_total.labels(reason="cancelled").inc()
            self.logger.warning(
                "Transaction retry cancelled during backoff",
                retry_tx_attempt=attempt,
                error_type=type(error).__name__,
            )
            raise cancelled from error
        transaction_backoff_seconds.observe(seconds)


_retry_controller: Optional[RetryController] = None
_retry_controller_lock = threading.Lock()


def get_retry_controller() -> RetryController:
    """
    Get the shared retry controller built from the global settings.

    Returns:
        RetryController instance
    """
    global _retry_controller
    if _retry_controller is None:
        with _retry_controller_lock:
            if _retry_controller is None:
                _retry_controller = RetryController()
                logger.info(
                    "Initialized shared retry controller",
                    max_retries=_retry_controller.max_retries,
                )
    return _retry_controller
