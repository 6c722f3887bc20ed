"""
Connection collaborator for the retry controller.

The controller only needs four things from a connection: how many
transactions are open on it, which engine family it talks to, the
engine's version string, and the ability to run a read-only diagnostic
statement. ``SessionConnection`` provides them over a SQLAlchemy Session.
"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Optional, Protocol, runtime_checkable

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session


@runtime_checkable
class TransactionalConnection(Protocol):
    """
    Protocol for connections the retry controller can inspect.
    """

    def open_transactions(self) -> int:
        """Number of transactions currently open on this connection."""
        ...

    def engine_name(self) -> str:
        """Engine family identifier (e.g. ``mysql``)."""
        ...

    def server_version(self) -> str:
        """Version string reported by the engine."""
        ...

    def fetch_first_row(self, statement: str) -> Optional[Mapping[str, Any]]:
        """Run a read-only statement and return its first row, if any."""
        ...


class SessionConnection:
    """
    ``TransactionalConnection`` adapter over a SQLAlchemy Session.

    Version and diagnostic statements run on a separate connection checked
    out from the session's bind, so they never autobegin or join the
    session's own transaction. When the session is bound to a single
    Connection rather than an Engine, that connection is used directly.

    Attributes:
        session: Wrapped SQLAlchemy Session
    """

    def __init__(self, session: Session):
        self.session = session

    def open_transactions(self) -> int:
        """
        Count the root transaction plus every open SAVEPOINT.
        """
        if not self.session.in_transaction():
            return 0

        depth = 1
        nested = self.session.get_nested_transaction()
        while nested is not None and nested.nested:
            depth += 1
            nested = nested.parent
        return depth

    def engine_name(self) -> str:
        return self.session.get_bind().dialect.name

    def server_version(self) -> str:
        with self._diagnostic_connection() as conn:
            info = conn.dialect.server_version_info
        return ".".join(str(part) for part in info) if info else ""

    def fetch_first_row(self, statement: str) -> Optional[Mapping[str, Any]]:
        with self._diagnostic_connection() as conn:
            row = conn.execute(text(statement)).mappings().first()
        return dict(row) if row is not None else None

    @contextmanager
    def _diagnostic_connection(self) -> Iterator[Connection]:
        bind = self.session.get_bind()
        if isinstance(bind, Engine):
            with bind.connect() as conn:
                yield conn
        else:
            yield bind
