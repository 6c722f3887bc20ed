"""Unit test fixtures (mocks and stubs).

Provides mock objects for testing without a database.
"""

from unittest.mock import Mock

import pytest

from deadlock_retry.persistence.connection import TransactionalConnection
from deadlock_retry.retry.backoff import BackoffSchedule


@pytest.fixture
def mock_connection():
    """Mock TransactionalConnection for a MySQL 8 server with no open transaction."""
    mock = Mock(spec=TransactionalConnection)
    mock.open_transactions = Mock(return_value=0)
    mock.engine_name = Mock(return_value="mysql")
    mock.server_version = Mock(return_value="8.0.36")
    mock.fetch_first_row = Mock(
        return_value={"Type": "InnoDB", "Name": "", "Status": "LATEST DETECTED DEADLOCK ..."}
    )
    return mock


@pytest.fixture
def sqlite_connection():
    """Mock TransactionalConnection for an engine without InnoDB diagnostics."""
    mock = Mock(spec=TransactionalConnection)
    mock.open_transactions = Mock(return_value=0)
    mock.engine_name = Mock(return_value="sqlite")
    mock.server_version = Mock(return_value="3.45.1")
    mock.fetch_first_row = Mock(return_value=None)
    return mock


@pytest.fixture
def mock_logger():
    """Mock structlog logger."""
    return Mock()


@pytest.fixture
def sleep_calls():
    """List recording every sleep() duration."""
    return []


@pytest.fixture
def recording_backoff(sleep_calls) -> BackoffSchedule:
    """Default backoff table whose sleep only records the duration."""
    return BackoffSchedule(sleep=sleep_calls.append)
