"""
Deterministic, attempt-indexed backoff schedule.

The default table doubles from one second up to a 32 second ceiling,
with no wait at all before the first retry:

    attempt:  1  2  3  4  5   6   7   8+
    seconds:  0  1  2  4  8  16  32   32

There is no jitter; identical attempt numbers always wait the same time.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

from deadlock_retry.config import Settings
from deadlock_retry.retry.exceptions import RetryCancelled

DEFAULT_WAIT_TIMES: tuple[float, ...] = (0, 1, 2, 4, 8, 16, 32)
DEFAULT_CEILING: float = 32.0


@dataclass(frozen=True)
class BackoffSchedule:
    """
    Immutable mapping from retry attempt number to pause duration.

    Attributes:
        wait_times: Pause in seconds for attempts 1..len(wait_times)
        ceiling: Pause for any attempt outside the table
        sleep: Blocking sleep function (injectable for tests)
    """

    wait_times: tuple[float, ...] = DEFAULT_WAIT_TIMES
    ceiling: float = DEFAULT_CEILING
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        # Accept lists from configuration while keeping the table immutable
        object.__setattr__(self, "wait_times", tuple(self.wait_times))

    @classmethod
    def from_settings(
        cls, settings: Settings, sleep: Callable[[float], None] = time.sleep
    ) -> "BackoffSchedule":
        return cls(
            wait_times=tuple(settings.BACKOFF_WAIT_TIMES),
            ceiling=settings.BACKOFF_CEILING,
            sleep=sleep,
        )

    def wait(self, attempt: int) -> float:
        """
        Return the pause in seconds before retry number ``attempt``.

        Attempt numbers outside the table return the ceiling.
        """
        if 1 <= attempt <= len(self.wait_times):
            return self.wait_times[attempt - 1]
        return self.ceiling

    def pause(self, attempt: int, cancel_event: Optional[threading.Event] = None) -> float:
        """
        Block the calling thread for the scheduled duration.

        A zero wait returns without sleeping. When ``cancel_event`` is given
        the pause waits on it instead and aborts as soon as it is set.

        Returns:
            Seconds paused (the scheduled value)

        Raises:
            RetryCancelled: ``cancel_event`` was set before or during the pause
        """
        seconds = self.wait(attempt)

        if cancel_event is not None:
            if cancel_event.is_set() or (seconds > 0 and cancel_event.wait(seconds)):
                raise RetryCancelled(attempt)
            return seconds

        if seconds > 0:
            self.sleep(seconds)
        return seconds

