"""PostgreSQL database adapter.

Uses ``psycopg2`` with a ``ThreadedConnectionPool`` opened from the libpq
keyword DSN rendered by :meth:`DatabaseConfig.to_connection_string`.
Inserts read the new key back with ``RETURNING``.

Install the driver::

    pip install psycopg2-binary
    # or:  pip install plinth[postgresql]
"""

from __future__ import annotations

from typing import Any

from plinth.core.errors import ConfigError, DatabaseConnectionError
from plinth.core.logging import get_logger
from plinth.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter.

    Each statement borrows a connection from the thread-safe pool and puts
    it back when done.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        pool_size: int = 5,
        connect_timeout: int = 10,
        ssl_mode: str = "disable",
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.POSTGRESQL,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            pool_size=pool_size,
            connect_timeout=connect_timeout,
            ssl_mode=ssl_mode,
            options=kwargs,
        )
        super().__init__(config)
        self._pool: Any = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> PostgreSQLAdapter:
        return cls(
            host=config.host,
            port=config.effective_port,
            database=config.database,
            username=config.username,
            password=config.password,
            pool_size=config.pool_size,
            connect_timeout=config.connect_timeout,
            ssl_mode=config.ssl_mode,
            **config.options,
        )

    def connect(self) -> None:
        """Open the PostgreSQL connection pool."""
        try:
            import psycopg2
            import psycopg2.pool
        except ImportError:
            raise ConfigError(
                "psycopg2 is required for PostgreSQL. Install with: pip install psycopg2-binary"
            ).with_context(driver="postgresql") from None

        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=self._config.pool_size,
                dsn=self._config.to_connection_string(),
                connect_timeout=self._config.connect_timeout,
                **self._config.options,
            )
            self._connected = True
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                cause=e,
            ).with_context(operation="connect", driver="postgresql") from e

        logger.info(
            "database.connected",
            driver="postgresql",
            dsn=self._config.to_connection_string(hide_password=True),
        )

    def disconnect(self) -> None:
        """Close PostgreSQL connection pool."""
        if self._pool:
            self._pool.closeall()
            self._pool = None
            self._connected = False
            logger.info("database.disconnected", driver="postgresql")

    def _acquire(self) -> Connection:
        if not self._pool:
            self.connect()
        try:
            return self._pool.getconn()
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to get PostgreSQL connection from pool: {e}",
                cause=e,
            ).with_context(operation="acquire", driver="postgresql") from e

    def _release(self, conn: Connection) -> None:
        if self._pool:
            self._pool.putconn(conn)


__all__ = [
    "PostgreSQLAdapter",
]
