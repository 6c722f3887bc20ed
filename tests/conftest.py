"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from deadlock_retry.config import Settings
from deadlock_retry.retry.diagnostics import DiagnosticsCache, get_diagnostics_cache


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with the documented defaults made explicit.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.MAX_RETRIES = 2
    """
    return Settings(
        # === Application ===
        APP_NAME="deadlock-retry (Test)",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Retry Policy ===
        MAX_RETRIES=5,
        BACKOFF_WAIT_TIMES=[0, 1, 2, 4, 8, 16, 32],
        BACKOFF_CEILING=32.0,

        # === Error Classification ===
        TRANSIENT_ERROR_MESSAGES=["Try restarting transaction", "Duplicate entry"],

        # === Engine Diagnostics ===
        DIAGNOSTICS_ENABLED=True,
        DIAGNOSTICS_ENGINE_FAMILIES=["mysql", "mariadb"],
        DIAGNOSTICS_VERSION_BOUNDARY="5.5",
        DIAGNOSTICS_LEGACY_COMMAND="SHOW INNODB STATUS",
        DIAGNOSTICS_COMMAND="SHOW ENGINE INNODB STATUS",
        DIAGNOSTICS_STATUS_COLUMN="Status",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics_cache():
    """Start every test with an UNKNOWN process-wide diagnostics command."""
    get_diagnostics_cache()._reset()
    yield
    get_diagnostics_cache()._reset()


@pytest.fixture
def diagnostics_cache() -> DiagnosticsCache:
    """Private cache for tests that must not touch the process-wide one."""
    return DiagnosticsCache()


@pytest.fixture
def create_deadlock_error():
    """Factory fixture for the error MySQL raises when InnoDB picks a deadlock victim.

    Usage:
        def test_something(create_deadlock_error):
            error = create_deadlock_error()
    """
    def _create(
        message: str = "Deadlock found when trying to get lock; try restarting transaction",
        statement: str = "UPDATE accounts SET balance = balance - 10 WHERE id = 1",
    ) -> OperationalError:
        return OperationalError(statement, {}, Exception(1213, message))

    return _create


@pytest.fixture
def create_duplicate_entry_error():
    """Factory fixture for a MySQL unique-key violation."""
    def _create(
        message: str = "Duplicate entry 'alice' for key 'users.name'",
        statement: str = "INSERT INTO users (name) VALUES ('alice')",
    ) -> IntegrityError:
        return IntegrityError(statement, {}, Exception(1062, message))

    return _create
