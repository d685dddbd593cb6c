"""Settings for plinth.

Connection parameters, logging and migration discovery are read from
``PLINTH_*`` environment variables (and ``.env``) by pydantic-settings.
A YAML config file with a ``database:`` section can be layered on top::

    database:
      driver: mysql
      host: localhost
      port: 3306
      name: app
      user: root
      password: secret
    log_level: DEBUG
    migrations:
      modules:
        - app.migrations

Values from the file win over the environment; ``database_url`` (or
``database.url`` in the file) wins over the individual components.

Examples:
    >>> settings = load_settings("config.yaml")
    >>> settings.database_config().db_type
    <DatabaseType.MYSQL: 'mysql'>

Tags:
    settings, configuration, pydantic, yaml, environment
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from plinth.core.adapters.types import DatabaseConfig, DatabaseType
from plinth.core.errors import ConfigError

# YAML `database:` keys → settings fields
_DATABASE_KEYS = {
    "driver": "db_driver",
    "host": "db_host",
    "port": "db_port",
    "name": "db_name",
    "user": "db_user",
    "password": "db_password",
    "path": "db_path",
    "url": "database_url",
    "pool_size": "db_pool_size",
}


class PlinthSettings(BaseSettings):
    """Environment-driven settings (prefix ``PLINTH_``)."""

    model_config = SettingsConfigDict(
        env_prefix="PLINTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    db_driver: str = "mysql"
    db_host: str = "localhost"
    db_port: int | None = None
    db_name: str = ""
    db_user: str | None = None
    db_password: str | None = None
    db_path: str | None = Field(default=None, description="SQLite file path")
    db_pool_size: int = 5
    database_url: str | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["auto", "json", "console"] = "auto"

    # ── Migrations ───────────────────────────────────────────────
    migration_modules: list[str] = Field(
        default_factory=list,
        description="Import paths whose import registers migration units",
    )

    def database_config(self) -> DatabaseConfig:
        """Connection parameters as a :class:`DatabaseConfig`."""
        if self.database_url:
            config = DatabaseConfig.from_url(self.database_url)
            config.pool_size = self.db_pool_size
            return config

        db_type = DatabaseType.parse(self.db_driver)
        if db_type is DatabaseType.SQLITE:
            return DatabaseConfig(db_type=db_type, path=self.db_path or self.db_name or ":memory:")

        return DatabaseConfig(
            db_type=db_type,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
            username=self.db_user,
            password=self.db_password,
            pool_size=self.db_pool_size,
        )

    @property
    def json_logs(self) -> bool | None:
        """``configure_logging`` flag: ``None`` lets it decide from the tty."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}", cause=e) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", cause=e) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _overrides_from_yaml(data: dict[str, Any]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    database = data.get("database") or {}
    if not isinstance(database, dict):
        raise ConfigError("'database' section must be a mapping")
    for key, value in database.items():
        if key in _DATABASE_KEYS and value is not None:
            overrides[_DATABASE_KEYS[key]] = value

    for key in ("log_level", "log_format"):
        if data.get(key) is not None:
            overrides[key] = data[key]

    migrations = data.get("migrations") or {}
    if isinstance(migrations, dict) and migrations.get("modules"):
        overrides["migration_modules"] = list(migrations["modules"])
    return overrides


def load_settings(config_path: str | Path | None = None, **overrides: Any) -> PlinthSettings:
    """Build settings from the environment, an optional YAML file and overrides."""
    values: dict[str, Any] = {}
    if config_path is not None:
        values.update(_overrides_from_yaml(_read_yaml(Path(config_path))))
    values.update({k: v for k, v in overrides.items() if v is not None})
    return PlinthSettings(**values)


@lru_cache
def get_settings() -> PlinthSettings:
    """Process-wide settings from the environment (cached)."""
    return PlinthSettings()


__all__ = [
    "PlinthSettings",
    "get_settings",
    "load_settings",
]
