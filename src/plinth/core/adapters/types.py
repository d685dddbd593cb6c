"""Database types and connection configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from plinth.core.errors import ConfigError


class DatabaseType(str, Enum):
    """Supported database types."""

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"

    @classmethod
    def parse(cls, value: DatabaseType | str) -> DatabaseType:
        """Resolve a driver name (``'postgres'`` is accepted as an alias)."""
        if isinstance(value, DatabaseType):
            return value
        name = str(value).lower()
        if name == "postgres":
            name = "postgresql"
        try:
            return cls(name)
        except ValueError:
            raise ConfigError(
                f"Unsupported database driver '{value}'. "
                f"Supported: {[t.value for t in cls]}"
            ).with_context(driver=str(value)) from None


DEFAULT_PORTS = {
    DatabaseType.MYSQL: 3306,
    DatabaseType.POSTGRESQL: 5432,
}

_MYSQL_DRIVERNAME = "mysql+mysqlconnector"


def _libpq_value(value: Any) -> str:
    text = "" if value is None else str(value)
    if text == "" or any(ch in text for ch in " '\\"):
        return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"
    return text


@dataclass
class DatabaseConfig:
    """
    Configuration for a database connection.

    Different fields are used by different database types.
    """

    # Common
    db_type: DatabaseType = DatabaseType.MYSQL

    # SQLite
    path: str | None = None

    # MySQL / PostgreSQL
    host: str = "localhost"
    port: int | None = None
    database: str = ""
    username: str | None = None
    password: str | None = None

    # Connection pool
    pool_size: int = 5

    # PostgreSQL
    ssl_mode: str = "disable"  # disable, prefer, require, verify-ca, verify-full

    # Options
    connect_timeout: int = 10

    # Extra options (driver-specific)
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def effective_port(self) -> int | None:
        return self.port or DEFAULT_PORTS.get(self.db_type)

    def to_connection_string(self, *, hide_password: bool = False) -> str:
        """Render the DSN the driver for ``db_type`` understands.

        MySQL gets a SQLAlchemy-style URL (credentials escaped), PostgreSQL
        a libpq keyword string, SQLite the database path.
        """
        match self.db_type:
            case DatabaseType.SQLITE:
                return self.path or ":memory:"
            case DatabaseType.MYSQL:
                url = URL.create(
                    _MYSQL_DRIVERNAME,
                    username=self.username,
                    password=self.password,
                    host=self.host,
                    port=self.effective_port,
                    database=self.database or None,
                )
                return url.render_as_string(hide_password=hide_password)
            case DatabaseType.POSTGRESQL:
                password = "***" if hide_password and self.password else self.password
                parts = {
                    "host": self.host,
                    "port": self.effective_port,
                    "user": self.username,
                    "password": password,
                    "dbname": self.database,
                    "sslmode": self.ssl_mode,
                }
                return " ".join(f"{key}={_libpq_value(value)}" for key, value in parts.items())
            case _:
                raise ConfigError(
                    f"Connection string not supported for: {self.db_type}"
                ).with_context(driver=str(self.db_type))

    @classmethod
    def from_url(cls, url: str) -> DatabaseConfig:
        """Build a config from a URL such as ``mysql://u:p@host:3306/app``.

        Query-string parameters land in ``options``; ``sslmode`` is lifted
        onto ``ssl_mode`` for PostgreSQL.
        """
        try:
            parsed = make_url(url)
        except ArgumentError as e:
            raise ConfigError(f"Invalid database URL: {e}", cause=e) from e

        db_type = DatabaseType.parse(parsed.get_backend_name())
        options = {key: value for key, value in parsed.query.items()}

        if db_type is DatabaseType.SQLITE:
            return cls(db_type=db_type, path=parsed.database or ":memory:", options=options)

        config = cls(
            db_type=db_type,
            host=parsed.host or "localhost",
            port=parsed.port,
            database=parsed.database or "",
            username=parsed.username,
            password=parsed.password,
        )
        if "sslmode" in options:
            config.ssl_mode = str(options.pop("sslmode"))
        config.options = options
        return config


__all__ = [
    "DEFAULT_PORTS",
    "DatabaseType",
    "DatabaseConfig",
]
