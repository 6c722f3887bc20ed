"""
Integration tests for SessionConnection against SQLite.
"""

import sqlite3

from sqlalchemy.orm import Session

from deadlock_retry.persistence.connection import SessionConnection, TransactionalConnection


def test_satisfies_protocol(session):
    assert isinstance(SessionConnection(session), TransactionalConnection)


def test_open_transactions_counts_savepoints(session):
    connection = SessionConnection(session)

    assert connection.open_transactions() == 0
    with session.begin():
        assert connection.open_transactions() == 1
        with session.begin_nested():
            assert connection.open_transactions() == 2
            with session.begin_nested():
                assert connection.open_transactions() == 3
            assert connection.open_transactions() == 2
        assert connection.open_transactions() == 1
    assert connection.open_transactions() == 0


def test_engine_name(session):
    assert SessionConnection(session).engine_name() == "sqlite"


def test_server_version(session):
    assert SessionConnection(session).server_version() == sqlite3.sqlite_version


def test_fetch_first_row(session):
    connection = SessionConnection(session)

    assert connection.fetch_first_row("SELECT 1 AS one, 'InnoDB' AS Type") == {"one": 1, "Type": "InnoDB"}
    assert connection.fetch_first_row("SELECT owner FROM accounts") is None


def test_diagnostic_statements_do_not_begin_session_transaction(session):
    """Probing must not autobegin the caller's session."""
    connection = SessionConnection(session)

    connection.server_version()
    connection.fetch_first_row("SELECT 1")

    assert not session.in_transaction()
    assert connection.open_transactions() == 0


def test_session_bound_to_connection(engine):
    with engine.connect() as conn:
        session = Session(bind=conn)
        connection = SessionConnection(session)

        assert connection.engine_name() == "sqlite"
        assert connection.fetch_first_row("SELECT 2 AS two") == {"two": 2}
        session.close()
