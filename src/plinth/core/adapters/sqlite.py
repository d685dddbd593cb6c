"""SQLite database adapter.

Development and test backend.  Uses the built-in ``sqlite3`` module with
declared-type conversion so ``TIMESTAMP``, ``DATE`` and ``BOOLEAN`` columns
come back as ``datetime``, ``date`` and ``bool``.
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Any

from plinth.core.errors import DatabaseConnectionError
from plinth.core.logging import get_logger
from plinth.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)


def _adapt_datetime(value: datetime) -> str:
    return value.isoformat(" ")


def _convert_datetime(value: bytes) -> datetime:
    return datetime.fromisoformat(value.decode())


def _convert_date(value: bytes) -> date:
    return date.fromisoformat(value.decode())


def _convert_boolean(value: bytes) -> bool:
    return value not in (b"0", b"", b"false", b"FALSE")


sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_adapter(date, date.isoformat)
sqlite3.register_converter("TIMESTAMP", _convert_datetime)
sqlite3.register_converter("DATETIME", _convert_datetime)
sqlite3.register_converter("DATE", _convert_date)
sqlite3.register_converter("BOOLEAN", _convert_boolean)


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Holds a single connection shared by every statement.  Suitable for:
    - Development and testing
    - Single-process tools
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        timeout: float = 5.0,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.SQLITE,
            path=path,
            options=kwargs,
        )
        super().__init__(config)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> SQLiteAdapter:
        return cls(path=config.path or ":memory:", **config.options)

    def connect(self) -> None:
        """Connect to SQLite database."""
        if self._conn is not None:
            return

        path = self._config.to_connection_string()
        uri = path.startswith("file:")

        try:
            self._conn = sqlite3.connect(
                path,
                timeout=self._timeout,
                check_same_thread=False,
                detect_types=sqlite3.PARSE_DECLTYPES,
                uri=uri,
            )
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._connected = True
        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ).with_context(operation="connect", driver="sqlite") from e

        logger.info("database.connected", driver="sqlite", path=path)

    def disconnect(self) -> None:
        """Close SQLite connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
            self._connected = False
            logger.info("database.disconnected", driver="sqlite")

    def _acquire(self) -> Connection:
        if self._conn is None:
            self.connect()
        return self._conn

    def _release(self, conn: Connection) -> None:
        """Shared connection; nothing to return."""


__all__ = [
    "SQLiteAdapter",
]
