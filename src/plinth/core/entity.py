"""Entity base class and field descriptors.

Entities are dataclasses extending :class:`Entity`.  Each persisted field
declares the column it maps to with :func:`column`; fields that must never
reach SQL are declared with :func:`transient`.  The mapping is collected
once per type into a tuple of :class:`FieldDescriptor` and reused for
marshaling (entity → column map) and unmarshaling (row → entity).

Usage:
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class User(Entity):
    ...     name: str | None = column("name")
    ...     email: str | None = column("email")
    ...     password: str | None = transient()
    >>> [d.column for d in describe(User) if d.persisted]
    ['id', 'created_at', 'updated_at', 'name', 'email']
    >>> table_name(User)
    'user'

Tags:
    entity, orm, field-metadata, mapping
"""

from __future__ import annotations

import dataclasses
from dataclasses import MISSING, dataclass, field
from datetime import datetime
from functools import cache
from typing import Any

from plinth.core.errors import MappingError

COLUMN_KEY = "plinth.column"
PERSISTED_KEY = "plinth.persisted"

ID_COLUMN = "id"
CREATED_AT_COLUMN = "created_at"
UPDATED_AT_COLUMN = "updated_at"


def column(name: str, *, default: Any = None, default_factory: Any = MISSING) -> Any:
    """Declare a dataclass field persisted under column ``name``."""
    metadata = {COLUMN_KEY: name, PERSISTED_KEY: True}
    if default_factory is not MISSING:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def transient(*, default: Any = None, default_factory: Any = MISSING) -> Any:
    """Declare a dataclass field that is never read from or written to the store."""
    metadata = {COLUMN_KEY: None, PERSISTED_KEY: False}
    if default_factory is not MISSING:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=default, metadata=metadata)


@dataclass(kw_only=True)
class Entity:
    """Base shape for every persisted record.

    The identifier is assigned by the store on insert; the timestamps are
    maintained by :class:`~plinth.core.repository.Repository`.
    """

    id: int | None = column(ID_COLUMN)
    created_at: datetime | None = column(CREATED_AT_COLUMN)
    updated_at: datetime | None = column(UPDATED_AT_COLUMN)


@dataclass(frozen=True)
class FieldDescriptor:
    """Persistence metadata for one entity field."""

    attribute: str
    column: str | None
    persisted: bool


@cache
def describe(entity_type: type) -> tuple[FieldDescriptor, ...]:
    """Return the field descriptors of ``entity_type`` (cached per type).

    Raises:
        MappingError: If ``entity_type`` is not a dataclass type, or if it does
            not map exactly one field to the identifier column.
    """
    if not (isinstance(entity_type, type) and dataclasses.is_dataclass(entity_type)):
        raise MappingError(
            f"{entity_type!r} is not an entity dataclass"
        ).with_context(operation="describe")

    descriptors = []
    for f in dataclasses.fields(entity_type):
        col = f.metadata.get(COLUMN_KEY)
        persisted = bool(f.metadata.get(PERSISTED_KEY, False)) and col is not None
        descriptors.append(FieldDescriptor(attribute=f.name, column=col, persisted=persisted))

    id_fields = [d for d in descriptors if d.persisted and d.column == ID_COLUMN]
    if len(id_fields) != 1:
        raise MappingError(
            f"{entity_type.__name__} must map exactly one field to '{ID_COLUMN}' "
            f"(found {len(id_fields)})"
        ).with_context(operation="describe", table=table_name(entity_type))

    return tuple(descriptors)


def persisted_fields(entity_type: type) -> list[FieldDescriptor]:
    """Descriptors that participate in inserts and updates."""
    return [d for d in describe(entity_type) if d.persisted]


def table_name(entity_type: type) -> str:
    """Table for ``entity_type``: ``__tablename__`` if declared, else the lower-cased class name."""
    return getattr(entity_type, "__tablename__", None) or entity_type.__name__.lower()


def to_column_map(entity: Any) -> dict[str, Any]:
    """Column → value for every persisted field, in declaration order."""
    return {d.column: getattr(entity, d.attribute) for d in persisted_fields(type(entity))}


def from_row(entity_type: type, row: dict[str, Any]) -> Any:
    """Build an entity from a result row.

    Result columns are matched to persisted fields case-insensitively;
    columns with no matching field are ignored and fields with no matching
    column keep their defaults.
    """
    by_column = {d.column.lower(): d for d in persisted_fields(entity_type)}
    kwargs = {}
    for key, value in row.items():
        descriptor = by_column.get(str(key).lower())
        if descriptor is not None:
            kwargs[descriptor.attribute] = value
    try:
        return entity_type(**kwargs)
    except TypeError as e:
        raise MappingError(
            f"Cannot build {entity_type.__name__} from row: {e}",
            cause=e,
        ).with_context(operation="materialize", table=table_name(entity_type)) from e


def get_id(entity: Any) -> Any:
    """Current identifier value of ``entity``."""
    for d in persisted_fields(type(entity)):
        if d.column == ID_COLUMN:
            return getattr(entity, d.attribute)
    return None


def set_id(entity: Any, value: Any) -> None:
    for d in persisted_fields(type(entity)):
        if d.column == ID_COLUMN:
            setattr(entity, d.attribute, value)
            return


__all__ = [
    "Entity",
    "FieldDescriptor",
    "column",
    "transient",
    "describe",
    "persisted_fields",
    "table_name",
    "to_column_map",
    "from_row",
    "get_id",
    "set_id",
    "ID_COLUMN",
    "CREATED_AT_COLUMN",
    "UPDATED_AT_COLUMN",
]
