"""Migration runner with batch-based rollback.

Applied units are tracked in the ``migrations`` table, one row per unit:
``(id, name UNIQUE, batch, created_at)``.  Every :meth:`Migrator.run`
applies all pending units under one new batch number; :meth:`Migrator.rollback`
reverts whole batches, newest first.

Architecture::

    run()                                rollback(step=1)
      ensure `migrations` table            records ORDER BY batch DESC, id DESC
      batch = max(batch) + 1               group by batch → newest `step` groups
      pending = registered − applied       for each record (id DESC):
      for name in sorted(pending):             unit.down(migrator)
          unit.up(migrator)                    DELETE record
          INSERT (name, batch, now)

Guardrails:
    ❌ DON'T: Expect a failed run to undo the units it already applied
    ✅ DO: Inspect ``result.names`` / ``result.error`` and roll back explicitly

    ❌ DON'T: Run two migrators against the same store concurrently
    ✅ DO: Serialize deployments; the runner takes no lock

Tags:
    migrations, batches, rollback, schema
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from itertools import groupby
from typing import Any

from plinth.core.adapters.base import DatabaseAdapter
from plinth.core.errors import MigrationError, MigrationNotFoundError, PlinthError
from plinth.core.logging import LogContext, get_logger
from plinth.core.migrations.registry import Migration, MigrationRegistry, default_registry
from plinth.core.query import QueryBuilder
from plinth.core.schema import Blueprint, Schema
from plinth.core.timestamps import utc_now

logger = get_logger(__name__)

MIGRATIONS_TABLE = "migrations"


@dataclass
class MigrationRecord:
    """Row of the ``migrations`` table."""

    id: int
    name: str
    batch: int
    created_at: datetime | None = None


@dataclass
class MigrationStatus:
    """Applied / pending view of one unit."""

    name: str
    applied: bool
    batch: int | None = None
    applied_at: datetime | None = None
    registered: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "applied": self.applied,
            "batch": self.batch,
            "applied_at": self.applied_at.isoformat() if self.applied_at else None,
            "registered": self.registered,
        }


@dataclass
class MigrationResult:
    """Result of a run or rollback."""

    names: list[str] = field(default_factory=list)
    batch: int | None = None
    error: PlinthError | None = None

    @property
    def count(self) -> int:
        return len(self.names)

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "names": list(self.names),
            "count": self.count,
            "batch": self.batch,
            "success": self.success,
            "error": self.error.to_dict() if self.error else None,
        }


def _migrations_blueprint(table: Blueprint) -> None:
    table.id()
    table.string("name").unique()
    table.integer("batch")
    table.date_time("created_at").nullable()


class Migrator:
    """Applies and reverts registered migration units.

    Parameters
    ----------
    db
        Connected adapter.  Units reach it as ``migrator.db``.
    registry
        Unit registry; defaults to the module-level registry.

    Example::

        db = open_database("sqlite", path="dev.db")
        result = Migrator(db).run()
        print(f"Ran {result.count} migrations")
    """

    def __init__(self, db: DatabaseAdapter, registry: MigrationRegistry | None = None) -> None:
        self.db = db
        self.registry = registry if registry is not None else default_registry
        self.schema = Schema(db)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, names: Iterable[str] | None = None) -> MigrationResult:
        """Apply every pending unit under one new batch.

        Stops at the first failure; units applied before it stay applied
        and are listed in ``result.names``.
        """
        result = MigrationResult()
        with LogContext(operation="migrate"):
            try:
                candidates = self._candidates(names)
                pending = self.pending(candidates)
                if not pending:
                    logger.info("migration.nothing_to_run")
                    return result

                batch = self._next_batch()
                result.batch = batch
                for name in pending:
                    unit = self.registry.get(name)
                    self._step(unit, "up")
                    self._record(name, batch)
                    result.names.append(name)
                    logger.info("migration.applied", name=name, batch=batch)
            except PlinthError as e:
                result.error = e
                logger.error("migration.failed", applied=result.count, **e.to_dict())
        return result

    def rollback(self, names: Iterable[str] | None = None, step: int = 0) -> MigrationResult:
        """Revert the newest ``step`` batches (all when ``step <= 0``).

        Within the reverted batches units are undone in descending id order.
        A recorded name with no registered unit stops the rollback with
        :class:`MigrationNotFoundError` on the result.
        """
        result = MigrationResult()
        allowed = set(names) if names is not None else None
        with LogContext(operation="rollback"):
            try:
                self._ensure_table()
                records = self._records(descending=True)
                if not records:
                    logger.info("migration.nothing_to_rollback")
                    return result

                batches = [list(group) for _, group in groupby(records, key=lambda r: r.batch)]
                if 0 < step < len(batches):
                    batches = batches[:step]
                result.batch = batches[0][0].batch

                for record in (r for batch in batches for r in batch):
                    if allowed is not None and record.name not in allowed:
                        raise MigrationNotFoundError(record.name)
                    unit = self.registry.get(record.name)
                    self._step(unit, "down")
                    QueryBuilder(MIGRATIONS_TABLE, self.db).where("id", "=", record.id).delete()
                    result.names.append(record.name)
                    logger.info("migration.reverted", name=record.name, batch=record.batch)
            except PlinthError as e:
                result.error = e
                logger.error("migration.rollback_failed", reverted=result.count, **e.to_dict())
        return result

    def reset(self, names: Iterable[str] | None = None) -> MigrationResult:
        """Revert every applied unit."""
        return self.rollback(names, step=0)

    def refresh(
        self, names: Iterable[str] | None = None
    ) -> tuple[MigrationResult, MigrationResult]:
        """Reset then run.  The run is skipped when the reset fails."""
        names = list(names) if names is not None else None
        reset = self.reset(names)
        if not reset.success:
            return reset, MigrationResult()
        return reset, self.run(names)

    def status(self, names: Iterable[str] | None = None) -> list[MigrationStatus]:
        """Applied / pending state of every registered or recorded unit."""
        candidates = self._candidates(names)
        applied = {r.name: r for r in self.applied()}
        statuses = []
        for name in sorted(set(candidates) | set(applied)):
            record = applied.get(name)
            statuses.append(
                MigrationStatus(
                    name=name,
                    applied=record is not None,
                    batch=record.batch if record else None,
                    applied_at=record.created_at if record else None,
                    registered=name in self.registry,
                )
            )
        return statuses

    def applied(self) -> list[MigrationRecord]:
        """Applied records in (batch, id) order."""
        self._ensure_table()
        return self._records()

    def pending(self, names: Iterable[str] | None = None) -> list[str]:
        """Sorted names not yet recorded as applied."""
        applied = {r.name for r in self.applied()}
        return sorted(name for name in self._candidates(names) if name not in applied)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _candidates(self, names: Iterable[str] | None) -> list[str]:
        if names is None:
            return self.registry.names()
        return list(names)

    def _ensure_table(self) -> None:
        """Create the ``migrations`` table if it doesn't exist."""
        if not self.schema.has_table(MIGRATIONS_TABLE):
            self.schema.create(MIGRATIONS_TABLE, _migrations_blueprint)
            logger.info("migration.table_created", table=MIGRATIONS_TABLE)

    def _records(self, descending: bool = False) -> list[MigrationRecord]:
        direction = "DESC" if descending else "ASC"
        rows = (
            QueryBuilder(MIGRATIONS_TABLE, self.db)
            .select("id", "name", "batch", "created_at")
            .order_by("batch", direction)
            .order_by("id", direction)
            .get()
        )
        return [
            MigrationRecord(
                id=row["id"],
                name=row["name"],
                batch=row["batch"],
                created_at=row.get("created_at"),
            )
            for row in rows
        ]

    def _next_batch(self) -> int:
        row = self.db.query_one(f"SELECT MAX(batch) AS batch FROM {MIGRATIONS_TABLE}")
        current = next(iter(row.values())) if row else None
        return (current or 0) + 1

    def _record(self, name: str, batch: int) -> None:
        QueryBuilder(MIGRATIONS_TABLE, self.db).insert(
            {"name": name, "batch": batch, "created_at": utc_now()}
        )

    def _step(self, unit: Migration, direction: str) -> None:
        try:
            getattr(unit, direction)(self)
        except MigrationError:
            raise
        except Exception as e:
            raise MigrationError(
                f"Migration {unit.name} failed during {direction}: {e}",
                cause=e,
            ).with_context(operation=direction, migration=unit.name) from e


__all__ = [
    "MIGRATIONS_TABLE",
    "MigrationRecord",
    "MigrationResult",
    "MigrationStatus",
    "Migrator",
]
