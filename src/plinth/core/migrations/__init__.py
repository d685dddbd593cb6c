"""Versioned schema migrations.

Units register under ``<timestamp>_<name>``; :class:`Migrator` applies
pending units in name order under a new batch and rolls whole batches back.
"""

from plinth.core.migrations.registry import (
    FunctionMigration,
    Migration,
    MigrationRegistry,
    default_registry,
    migration,
    validate_name,
)
from plinth.core.migrations.runner import (
    MIGRATIONS_TABLE,
    MigrationRecord,
    MigrationResult,
    MigrationStatus,
    Migrator,
)

__all__ = [
    "MIGRATIONS_TABLE",
    "FunctionMigration",
    "Migration",
    "MigrationRecord",
    "MigrationRegistry",
    "MigrationResult",
    "MigrationStatus",
    "Migrator",
    "default_registry",
    "migration",
    "validate_name",
]
