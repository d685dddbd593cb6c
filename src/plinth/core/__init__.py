"""
plinth core — connections, query builder, repository, schema and migrations.

Modules
-------
errors          PlinthError hierarchy with structured context
logging         structlog configuration and helpers
settings        PLINTH_* settings (pydantic-settings) + YAML config
dialect         Placeholder / quoting / DDL capabilities per driver
adapters        MySQL, PostgreSQL and SQLite adapters, open_database()
rows            RowSet cursor wrapper and entity materialization
entity          Entity base dataclass and field descriptors
query           Fluent parameterized QueryBuilder
repository      Generic CRUD Repository[T]
schema          Schema / Blueprint DDL builder
migrations      Migration registry and batch-based Migrator
"""

from plinth.core.adapters import DatabaseAdapter, DatabaseConfig, DatabaseType, open_database
from plinth.core.entity import Entity, column, transient
from plinth.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    ExecutionError,
    MappingError,
    MigrationError,
    PlinthError,
    RecordNotFoundError,
)
from plinth.core.migrations import Migration, MigrationRegistry, Migrator, migration
from plinth.core.query import QueryBuilder
from plinth.core.repository import Repository
from plinth.core.rows import RowSet, materialize_rows
from plinth.core.schema import Blueprint, Column, Schema

__all__ = [
    # Connection layer
    "DatabaseAdapter",
    "DatabaseConfig",
    "DatabaseType",
    "open_database",
    "RowSet",
    "materialize_rows",
    # Entities / queries
    "Entity",
    "column",
    "transient",
    "QueryBuilder",
    "Repository",
    # Schema / migrations
    "Blueprint",
    "Column",
    "Schema",
    "Migration",
    "MigrationRegistry",
    "Migrator",
    "migration",
    # Errors
    "PlinthError",
    "ConfigError",
    "DatabaseConnectionError",
    "ExecutionError",
    "MappingError",
    "MigrationError",
    "RecordNotFoundError",
]
