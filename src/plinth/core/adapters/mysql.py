"""MySQL database adapter.

Uses ``mysql.connector`` from the ``mysql-connector-python`` package.
MySQL uses **format** (``%s``) placeholder style.

Install the driver::

    pip install mysql-connector-python
    # or:  pip install plinth[mysql]

This adapter is import-guarded: if ``mysql.connector`` is not installed
a clear :class:`~plinth.core.errors.ConfigError` is raised at
``connect()`` time.
"""

from __future__ import annotations

from typing import Any

from plinth.core.errors import ConfigError, DatabaseConnectionError
from plinth.core.logging import get_logger
from plinth.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)


class MySQLAdapter(DatabaseAdapter):
    """MySQL / MariaDB database adapter.

    Uses a ``mysql.connector`` connection pool; each statement borrows a
    pooled connection and closing it returns it to the pool.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        pool_size: int = 5,
        connect_timeout: int = 10,
        charset: str = "utf8mb4",
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.MYSQL,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            pool_size=pool_size,
            connect_timeout=connect_timeout,
            options={**(kwargs or {}), "charset": charset},
        )
        super().__init__(config)
        self._pool: Any = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> MySQLAdapter:
        return cls(
            host=config.host,
            port=config.effective_port,
            database=config.database,
            username=config.username,
            password=config.password,
            pool_size=config.pool_size,
            connect_timeout=config.connect_timeout,
            **config.options,
        )

    def connect(self) -> None:
        """Create the MySQL connection pool."""
        try:
            from mysql.connector import pooling
        except ImportError:
            raise ConfigError(
                "mysql-connector-python is required for MySQL. "
                "Install with: pip install mysql-connector-python"
            ).with_context(driver="mysql") from None

        try:
            self._pool = pooling.MySQLConnectionPool(
                pool_name="plinth_mysql_pool",
                pool_size=self._config.pool_size,
                host=self._config.host,
                port=self._config.effective_port,
                database=self._config.database,
                user=self._config.username,
                password=self._config.password,
                charset=self._config.options.get("charset", "utf8mb4"),
                connect_timeout=self._config.connect_timeout,
                autocommit=False,
            )
            self._connected = True
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL: {e}",
                cause=e,
            ).with_context(operation="connect", driver="mysql") from e

        logger.info(
            "database.connected",
            driver="mysql",
            dsn=self._config.to_connection_string(hide_password=True),
        )

    def disconnect(self) -> None:
        """Drop the MySQL connection pool.

        ``mysql.connector`` pools have no ``closeall()``; idle pooled
        connections are closed when the pool is collected.
        """
        if self._pool is not None:
            self._pool = None
            self._connected = False
            logger.info("database.disconnected", driver="mysql")

    def _acquire(self) -> Connection:
        if self._pool is None:
            self.connect()
        try:
            return self._pool.get_connection()
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to get MySQL connection from pool: {e}",
                cause=e,
            ).with_context(operation="acquire", driver="mysql") from e

    def _release(self, conn: Connection) -> None:
        # mysql.connector returns pooled connections on close
        conn.close()


__all__ = [
    "MySQLAdapter",
]
