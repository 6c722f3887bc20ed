"""
Retry controller exceptions.

The controller never wraps the caller's own failures: fatal and exhausted
errors are re-raised unchanged. The only exception it defines is raised
when the caller opts into cancellation and cancels during a backoff pause.
"""


class RetryCancelled(Exception):
    """
    Raised when a retry sequence is cancelled during a backoff pause.

    The transient error that triggered the pause is chained as
    ``__cause__``.

    Attributes:
        attempt: Retry attempt whose pause was interrupted
    """

    def __init__(self, attempt: int) -> None:
        """
        Initialize RetryCancelled exception.

        Args:
            attempt: Retry attempt whose pause was interrupted
        """
        self.attempt = attempt

        super().__init__(f"Transaction retry cancelled during backoff before retry {attempt}")
