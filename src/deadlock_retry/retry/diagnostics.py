"""
Engine contention diagnostics.

Some engines (MySQL/MariaDB with InnoDB) can describe the last detected
deadlock through a status command. Whether that command is usable is
decided once per process:

- The probe only runs against a configured engine family.
- The engine version selects between the legacy and modern spelling of
  the command.
- The chosen command is executed once as a smoke test. Success caches
  the command; any failure caches "unavailable" permanently.

Running the probe on every transaction is avoided because a failing
status command (missing PROCESS privilege, for instance) can itself
disturb the connection. Fetching the status text later is best-effort
and never raises.
"""

import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog

from deadlock_retry.config import Settings
from deadlock_retry.monitoring.metrics import diagnostics_probe_total
from deadlock_retry.persistence.connection import TransactionalConnection

_VERSION_PART = re.compile(r"\d+")


class DiagnosticsState(str, Enum):
    """Lifecycle of the process-wide diagnostics command."""

    UNKNOWN = "unknown"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class DiagnosticsCommand:
    """
    Cached result of the diagnostics probe.

    Attributes:
        state: Probe state
        command: Exact diagnostic statement (only when AVAILABLE)
    """

    state: DiagnosticsState
    command: Optional[str] = None

    @classmethod
    def unknown(cls) -> "DiagnosticsCommand":
        return cls(DiagnosticsState.UNKNOWN)

    @classmethod
    def available(cls, command: str) -> "DiagnosticsCommand":
        return cls(DiagnosticsState.AVAILABLE, command)

    @classmethod
    def unavailable(cls) -> "DiagnosticsCommand":
        return cls(DiagnosticsState.UNAVAILABLE)

    @property
    def is_available(self) -> bool:
        return self.state is DiagnosticsState.AVAILABLE


class DiagnosticsCache:
    """
    One-way, thread-safe cell holding the process-wide DiagnosticsCommand.

    The cell leaves UNKNOWN exactly once. ``resolve`` uses double-checked
    locking, so concurrent first callers run the probe a single time and
    every later reader gets the same frozen ``DiagnosticsCommand`` object.
    Reads never take the lock; swapping one immutable object for another
    is atomic, so a reader sees either UNKNOWN or the complete result.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = DiagnosticsCommand.unknown()

    @property
    def value(self) -> DiagnosticsCommand:
        return self._value

    def resolve(self, probe: Callable[[], DiagnosticsCommand]) -> DiagnosticsCommand:
        """
        Return the cached command, running ``probe`` if still UNKNOWN.

        The probe runs while holding the lock, so concurrent first callers
        block until it returns. Callers must not probe from a connection
        that pins resources the probe itself needs (see
        ``DiagnosticsProbe.ensure_probed``).

        Args:
            probe: Produces AVAILABLE or UNAVAILABLE; must not raise

        Returns:
            The settled DiagnosticsCommand
        """
        current = self._value
        if current.state is not DiagnosticsState.UNKNOWN:
            return current

        with self._lock:
            if self._value.state is DiagnosticsState.UNKNOWN:
                result = probe()
                if result.state is DiagnosticsState.UNKNOWN:
                    raise ValueError("Diagnostics probe must settle to AVAILABLE or UNAVAILABLE")
                self._value = result
            return self._value

    def _reset(self) -> None:
        # Test fixtures only; production code never moves the cell back to UNKNOWN
        with self._lock:
            self._value = DiagnosticsCommand.unknown()


_diagnostics_cache = DiagnosticsCache()


def get_diagnostics_cache() -> DiagnosticsCache:
    """
    Get the process-wide diagnostics cache.

    Returns:
        Shared DiagnosticsCache instance
    """
    return _diagnostics_cache


def parse_version(version: str) -> tuple[int, ...]:
    """
    Parse the numeric components of an engine version string.

    ``"5.1.73-log"`` becomes ``(5, 1, 73)``; suffixes after the dotted
    numeric prefix are ignored.
    """
    prefix = version.strip().split("-", 1)[0]
    return tuple(int(part) for part in _VERSION_PART.findall(prefix))


class DiagnosticsProbe:
    """
    Decide once per process whether engine diagnostics can be logged.

    Attributes:
        settings: Settings with the DIAGNOSTICS_* options
        cache: Shared one-way cache of the probe result
    """

    def __init__(
        self,
        settings: Settings,
        cache: Optional[DiagnosticsCache] = None,
        logger: Optional[Any] = None,
    ):
        self.settings = settings
        self.cache = cache if cache is not None else get_diagnostics_cache()
        self.logger = logger if logger is not None else structlog.get_logger(__name__)

    def ensure_probed(self, connection: TransactionalConnection) -> DiagnosticsCommand:
        """
        Probe ``connection`` unless the process already has a result.

        The probe checks out a second pooled connection. While ``connection``
        holds an open transaction the probe is deferred and UNKNOWN is
        returned, so a starved pool cannot stall the caller under the cache
        lock and then settle the process to UNAVAILABLE for good. The next
        call made outside a transaction probes instead.
        """
        current = self.cache.value
        if current.state is DiagnosticsState.UNKNOWN and connection.open_transactions() != 0:
            return current
        return self.cache.resolve(lambda: self.probe(connection))

    def probe(self, connection: TransactionalConnection) -> DiagnosticsCommand:
        """
        Probe the engine for a usable diagnostics command.

        Never raises: every failure settles to UNAVAILABLE.
        """
        if not self.settings.DIAGNOSTICS_ENABLED:
            diagnostics_probe_total.labels(result="unavailable").inc()
            return DiagnosticsCommand.unavailable()

        try:
            engine = connection.engine_name().lower()
            if not any(family.lower() in engine for family in self.settings.DIAGNOSTICS_ENGINE_FAMILIES):
                diagnostics_probe_total.labels(result="unavailable").inc()
                return DiagnosticsCommand.unavailable()

            command = self.select_command(connection.server_version())
            connection.fetch_first_row(command)
        except Exception as e:
            self.logger.info(
                "Cannot log engine diagnostics",
                error_type=type(e).__name__,
                error=str(e),
            )
            diagnostics_probe_total.labels(result="unavailable").inc()
            return DiagnosticsCommand.unavailable()

        self.logger.info(
            "Engine diagnostics available",
            engine=engine,
            command=command,
        )
        diagnostics_probe_total.labels(result="available").inc()
        return DiagnosticsCommand.available(command)

    def select_command(self, version: str) -> str:
        """
        Pick the diagnostic command spelling for an engine version.

        Args:
            version: Engine version string (e.g. ``"5.1.73-log"``)

        Returns:
            Legacy command below the configured boundary, modern otherwise
        """
        if parse_version(version) < parse_version(self.settings.DIAGNOSTICS_VERSION_BOUNDARY):
            return self.settings.DIAGNOSTICS_LEGACY_COMMAND
        return self.settings.DIAGNOSTICS_COMMAND

    def fetch_status(self, connection: TransactionalConnection) -> Optional[str]:
        """
        Fetch the engine's current contention status text.

        Returns:
            Status text, or None when diagnostics are unavailable or the
            fetch fails
        """
        current = self.cache.value
        if not current.is_available:
            return None

        try:
            row = connection.fetch_first_row(current.command)
            if row is None:
                return None
            status = row.get(self.settings.DIAGNOSTICS_STATUS_COLUMN)
            return None if status is None else str(status)
        except Exception as e:
            self.logger.debug(
                "Engine diagnostics fetch failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            return None
