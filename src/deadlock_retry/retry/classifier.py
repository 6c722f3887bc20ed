"""
Transient contention error classification.

An error is transient only when it is a failed-statement error raised by
the database layer and its message contains one of the configured
signatures. Everything else is fatal and must reach the caller unchanged.
"""

import re
from collections.abc import Sequence
from enum import Enum

from sqlalchemy.exc import StatementError

from deadlock_retry.config import Settings

DEFAULT_FAILURE_TYPES: tuple[type[BaseException], ...] = (StatementError,)


class ErrorClass(str, Enum):
    """Outcome of classifying a failure."""

    TRANSIENT = "transient"
    FATAL = "fatal"


class ErrorClassifier:
    """
    Classify failures raised by a protected transaction.

    Signatures are matched as literal, case-insensitive substrings so that
    driver prefixes (``(pymysql.err.OperationalError) (1213, ...``) and
    trailing SQL echoes do not prevent a match. Keep signatures to specific
    multi-word phrases; a single common word would match unrelated errors.

    Attributes:
        signatures: Configured message signatures
        failure_types: Exception types eligible for a transient verdict
    """

    def __init__(
        self,
        signatures: Sequence[str],
        failure_types: tuple[type[BaseException], ...] = DEFAULT_FAILURE_TYPES,
    ):
        self.signatures = tuple(signatures)
        self.failure_types = failure_types
        self._patterns = [re.compile(re.escape(signature), re.IGNORECASE) for signature in self.signatures]

    @classmethod
    def from_settings(cls, settings: Settings) -> "ErrorClassifier":
        return cls(settings.TRANSIENT_ERROR_MESSAGES)

    def classify(self, error: BaseException) -> ErrorClass:
        if not isinstance(error, self.failure_types):
            return ErrorClass.FATAL

        message = str(error)
        if any(pattern.search(message) for pattern in self._patterns):
            return ErrorClass.TRANSIENT
        return ErrorClass.FATAL

    def is_transient(self, error: BaseException) -> bool:
        return self.classify(error) is ErrorClass.TRANSIENT
