"""Database adapter base class.

Manifesto:
    Every driver shares the same lifecycle (connect / ping / disconnect) and
    the same statement path: translate ``?`` placeholders through the
    dialect, borrow a connection, run, commit, return the connection.  The
    abstract base owns that path so the MySQL, PostgreSQL and SQLite
    adapters only describe how to open, borrow and return connections.

Features:
    - ``execute`` / ``execute_insert`` / ``query_rows`` / ``query`` / ``query_one``
    - ``begin()`` → :class:`Transaction` and the ``transaction()`` context manager
    - Driver exceptions wrapped in :class:`ExecutionError` with the SQL attached
    - Context-manager protocol for connection lifecycle

Tags:
    database, abstract-base, adapter-pattern, transactions
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from plinth.core.dialect import Dialect, get_dialect
from plinth.core.errors import DatabaseConnectionError, ExecutionError, PlinthError
from plinth.core.logging import get_logger
from plinth.core.protocols import Connection, Cursor
from plinth.core.rows import RowSet, fetch_dicts

from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Subclasses implement ``connect``, ``disconnect``, ``_acquire`` and
    ``_release``; everything else is shared.
    """

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._connected = False
        self._dialect: Dialect = get_dialect(config.db_type.value)

    @classmethod
    @abstractmethod
    def from_config(cls, config: DatabaseConfig) -> DatabaseAdapter:
        """Build an adapter from a :class:`DatabaseConfig`."""
        ...

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def db_type(self) -> DatabaseType:
        """Database type."""
        return self._config.db_type

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    # -- Lifecycle ---------------------------------------------------------

    @abstractmethod
    def connect(self) -> None:
        """Establish connection (or pool) to the database."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection (or pool)."""
        ...

    @abstractmethod
    def _acquire(self) -> Connection:
        """Borrow a connection (may be from pool)."""
        ...

    @abstractmethod
    def _release(self, conn: Connection) -> None:
        """Return a borrowed connection."""
        ...

    def ping(self) -> None:
        """Round-trip ``SELECT 1``.

        Raises:
            DatabaseConnectionError: If the store does not answer.
        """
        try:
            self.query_one("SELECT 1")
        except PlinthError as e:
            raise DatabaseConnectionError(
                f"Ping failed for {self.db_type.value}: {e.message}",
                cause=e.cause or e,
            ).with_context(operation="ping", driver=self.db_type.value) from e

    # -- Statement path ----------------------------------------------------

    def _prepare(self, sql: str, params: Sequence[Any] | None) -> tuple[str, tuple]:
        params = tuple(params or ())
        if params:
            sql = self._dialect.format_placeholders(sql)
        return sql, params

    def _run(self, conn: Connection, sql: str, params: tuple) -> Cursor:
        cursor = conn.cursor()
        try:
            if params:
                cursor.execute(sql, params)
            else:
                cursor.execute(sql)
        except Exception:
            cursor.close()
            raise
        return cursor

    def _wrap(self, error: Exception, sql: str, operation: str) -> ExecutionError:
        return ExecutionError(
            f"{operation} failed: {error}",
            cause=error,
        ).with_context(operation=operation, driver=self.db_type.value, sql=sql)

    def _execute_on(self, conn: Connection, sql: str, params: Sequence[Any] | None) -> int:
        sql, params = self._prepare(sql, params)
        logger.debug("query.executed", sql=sql, binds=len(params))
        try:
            cursor = self._run(conn, sql, params)
        except Exception as e:
            raise self._wrap(e, sql, "execute") from e
        try:
            return cursor.rowcount
        finally:
            cursor.close()

    def _query_on(
        self, conn: Connection, sql: str, params: Sequence[Any] | None
    ) -> list[dict[str, Any]]:
        sql, params = self._prepare(sql, params)
        logger.debug("query.executed", sql=sql, binds=len(params))
        try:
            cursor = self._run(conn, sql, params)
            try:
                return fetch_dicts(cursor)
            finally:
                cursor.close()
        except Exception as e:
            raise self._wrap(e, sql, "query") from e

    def _insert_on(
        self, conn: Connection, sql: str, params: Sequence[Any] | None, key: str
    ) -> Any:
        if self._dialect.supports_returning:
            sql = f"{sql} RETURNING {key}"
        sql, params = self._prepare(sql, params)
        logger.debug("query.executed", sql=sql, binds=len(params))
        try:
            cursor = self._run(conn, sql, params)
            try:
                if self._dialect.supports_returning:
                    row = cursor.fetchone()
                    return row[0] if row else None
                return cursor.lastrowid
            finally:
                cursor.close()
        except Exception as e:
            raise self._wrap(e, sql, "insert") from e

    @contextmanager
    def _autocommit(self) -> Iterator[Connection]:
        conn = self._acquire()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._release(conn)

    def execute(self, sql: str, params: Sequence[Any] | None = ()) -> int:
        """Execute a statement and commit; returns rows affected."""
        with self._autocommit() as conn:
            return self._execute_on(conn, sql, params)

    def execute_insert(
        self, sql: str, params: Sequence[Any] | None = (), key: str = "id"
    ) -> Any:
        """Execute an INSERT and return the store-assigned ``key``."""
        with self._autocommit() as conn:
            return self._insert_on(conn, sql, params, key)

    def query(self, sql: str, params: Sequence[Any] | None = ()) -> list[dict[str, Any]]:
        """Execute query and return results as dicts."""
        with self._autocommit() as conn:
            return self._query_on(conn, sql, params)

    def query_one(self, sql: str, params: Sequence[Any] | None = ()) -> dict[str, Any] | None:
        """Execute query and return single result."""
        results = self.query(sql, params)
        return results[0] if results else None

    def query_rows(self, sql: str, params: Sequence[Any] | None = ()) -> RowSet:
        """Execute query and return an open :class:`RowSet`.

        The caller must close the set; closing returns the connection.
        """
        sql, params = self._prepare(sql, params)
        logger.debug("query.executed", sql=sql, binds=len(params))
        conn = self._acquire()
        try:
            cursor = self._run(conn, sql, params)
        except Exception as e:
            conn.rollback()
            self._release(conn)
            raise self._wrap(e, sql, "query") from e

        def _finish() -> None:
            try:
                conn.commit()
            finally:
                self._release(conn)

        return RowSet(cursor, on_close=_finish)

    # -- Transactions ------------------------------------------------------

    def begin(self) -> Transaction:
        """Start an explicit transaction on a dedicated connection."""
        return Transaction(self, self._acquire())

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Transaction context manager: commit on success, rollback on error."""
        tx = self.begin()
        try:
            yield tx
        except Exception:
            tx.rollback()
            raise
        else:
            tx.commit()

    def __enter__(self) -> DatabaseAdapter:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()


class Transaction:
    """Statements run on one connection until ``commit`` or ``rollback``."""

    def __init__(self, adapter: DatabaseAdapter, conn: Connection):
        self._adapter = adapter
        self._conn = conn
        self._done = False

    @property
    def active(self) -> bool:
        return not self._done

    def _check(self) -> None:
        if self._done:
            raise ExecutionError("Transaction already finished").with_context(
                operation="transaction", driver=self._adapter.db_type.value
            )

    def execute(self, sql: str, params: Sequence[Any] | None = ()) -> int:
        self._check()
        return self._adapter._execute_on(self._conn, sql, params)

    def execute_insert(
        self, sql: str, params: Sequence[Any] | None = (), key: str = "id"
    ) -> Any:
        self._check()
        return self._adapter._insert_on(self._conn, sql, params, key)

    def query(self, sql: str, params: Sequence[Any] | None = ()) -> list[dict[str, Any]]:
        self._check()
        return self._adapter._query_on(self._conn, sql, params)

    def query_one(self, sql: str, params: Sequence[Any] | None = ()) -> dict[str, Any] | None:
        results = self.query(sql, params)
        return results[0] if results else None

    def commit(self) -> None:
        self._check()
        try:
            self._conn.commit()
        finally:
            self._done = True
            self._adapter._release(self._conn)

    def rollback(self) -> None:
        if self._done:
            return
        try:
            self._conn.rollback()
        finally:
            self._done = True
            self._adapter._release(self._conn)


__all__ = [
    "DatabaseAdapter",
    "Transaction",
]
