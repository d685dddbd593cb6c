"""Generic entity repository.

Provides :class:`Repository` — CRUD for one entity type over a
:class:`~plinth.core.adapters.DatabaseAdapter`.  Statements are built with
:class:`~plinth.core.query.QueryBuilder`, so every value travels as a bind.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                        Repository[T]                               │
    │                                                                    │
    │   entity_type: type[T]    ← dataclass extending Entity             │
    │   db: DatabaseAdapter                                              │
    │   table: str              ← __tablename__ or lower-cased class     │
    │                                                                    │
    │   create(entity)          → entity (id + timestamps assigned)      │
    │   find_by_id(id)          → T | None                               │
    │   find_by_column(c, v)    → T | None                               │
    │   find_by_id_or_fail(id)  → T  (RecordNotFoundError)               │
    │   find_all(cond, *binds)  → list[T]                                │
    │   update(entity)          → rows affected (id, created_at kept)    │
    │   delete(entity)          → rows affected                          │
    │   query()                 → QueryBuilder bound to the table        │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> users = Repository(User, db)
    >>> user = users.create(User(name="Ada", email="ada@example.com"))
    >>> users.find_by_column("email", "ada@example.com").id == user.id
    True

Tags:
    repository, orm, crud, generic
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from plinth.core.adapters.base import DatabaseAdapter
from plinth.core.entity import (
    CREATED_AT_COLUMN,
    ID_COLUMN,
    Entity,
    describe,
    get_id,
    set_id,
    table_name,
    to_column_map,
)
from plinth.core.errors import ExecutionError, MappingError, RecordNotFoundError
from plinth.core.logging import get_logger
from plinth.core.query import QueryBuilder
from plinth.core.timestamps import utc_now

logger = get_logger(__name__)

T = TypeVar("T", bound=Entity)


def _has_id(value: Any) -> bool:
    return value is not None and value != 0


class Repository(Generic[T]):
    """CRUD access for one entity type.

    Parameters:
        entity_type: Dataclass extending :class:`Entity`.
        db: Connected adapter.
    """

    def __init__(self, entity_type: type[T], db: DatabaseAdapter) -> None:
        describe(entity_type)
        self.entity_type = entity_type
        self.db = db
        self.table = table_name(entity_type)

    def query(self) -> QueryBuilder:
        """Fresh builder bound to this repository's table and adapter."""
        return QueryBuilder(self.table, self.db)

    def _annotate(self, error: ExecutionError, operation: str) -> ExecutionError:
        return error.with_context(operation=operation, table=self.table)

    # -- Create ------------------------------------------------------------

    def create(self, entity: T) -> T:
        """INSERT ``entity`` and write the store-assigned id back onto it."""
        now = utc_now()
        entity.created_at = now
        entity.updated_at = now

        values = to_column_map(entity)
        if not _has_id(values.get(ID_COLUMN)):
            values.pop(ID_COLUMN, None)
        if not values:
            raise MappingError(
                f"{self.entity_type.__name__} has no mapped fields"
            ).with_context(operation="create", table=self.table)

        try:
            new_id = self.query().insert(values, key=ID_COLUMN)
        except ExecutionError as e:
            raise self._annotate(e, "create")

        if not _has_id(get_id(entity)) and new_id is not None:
            set_id(entity, new_id)

        logger.debug("entity.created", table=self.table, id=get_id(entity))
        return entity

    # -- Read --------------------------------------------------------------

    def find_by_id(self, id: Any) -> T | None:
        return self.find_by_column(ID_COLUMN, id)

    def find_by_column(self, column: str, value: Any) -> T | None:
        """First entity whose ``column`` equals ``value``."""
        try:
            return self.query().where(column, "=", value).first(self.entity_type)
        except ExecutionError as e:
            raise self._annotate(e, "find")

    def find_by_id_or_fail(self, id: Any) -> T:
        entity = self.find_by_id(id)
        if entity is None:
            raise RecordNotFoundError(self.table, id)
        return entity

    def find_all(self, condition: str | None = None, *binds: Any) -> list[T]:
        """All entities, optionally filtered by a raw condition with binds."""
        builder = self.query()
        if condition:
            builder.where_raw(condition, *binds)
        try:
            return builder.get(self.entity_type)
        except ExecutionError as e:
            raise self._annotate(e, "find_all")

    # -- Update / delete ---------------------------------------------------

    def _require_id(self, entity: T, operation: str) -> Any:
        entity_id = get_id(entity)
        if not _has_id(entity_id):
            raise MappingError(
                f"Cannot {operation} {self.entity_type.__name__} without an id"
            ).with_context(operation=operation, table=self.table)
        return entity_id

    def update(self, entity: T) -> int:
        """UPDATE every mapped column except ``id`` and ``created_at``."""
        entity_id = self._require_id(entity, "update")
        entity.updated_at = utc_now()

        values = to_column_map(entity)
        values.pop(ID_COLUMN, None)
        values.pop(CREATED_AT_COLUMN, None)

        try:
            affected = self.query().where(ID_COLUMN, "=", entity_id).update(values)
        except ExecutionError as e:
            raise self._annotate(e, "update")
        logger.debug("entity.updated", table=self.table, id=entity_id, rows=affected)
        return affected

    def delete(self, entity: T) -> int:
        entity_id = self._require_id(entity, "delete")
        try:
            affected = self.query().where(ID_COLUMN, "=", entity_id).delete()
        except ExecutionError as e:
            raise self._annotate(e, "delete")
        logger.debug("entity.deleted", table=self.table, id=entity_id, rows=affected)
        return affected


__all__ = [
    "Repository",
]
