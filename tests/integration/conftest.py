"""Integration test fixtures (database engine and sessions).

Integration tests run against a file-backed SQLite database through
SQLAlchemy, so they need no external services.
"""

import pytest
from sqlalchemy import Integer, String, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker


class Base(DeclarativeBase):
    pass


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner: Mapped[str] = mapped_column(String(50), unique=True)
    balance: Mapped[int] = mapped_column(Integer, default=0)


@pytest.fixture
def engine(tmp_path):
    """SQLite engine with working SAVEPOINT support.

    pysqlite's own transaction handling breaks SAVEPOINT; the driver is put
    in autocommit mode and SQLAlchemy emits BEGIN itself.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'accounts.db'}")

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory) -> Session:
    with session_factory() as session:
        yield session


@pytest.fixture
def account_model() -> type[Account]:
    """Mapped Account class for building rows in tests."""
    return Account
