"""Result rows and entity materialization.

:class:`RowSet` is an open cursor over a result.  It yields plain dicts
keyed by result column name and must be closed by the caller, which also
returns a pooled connection.  :func:`materialize_rows` turns rows into
entity instances.

Examples:
    >>> with db.query_rows("SELECT id, name FROM users") as rows:
    ...     users: list[User] = []
    ...     materialize_rows(rows, users, User)

Tags:
    rows, cursor, mapping, materialize
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, MutableSequence
from typing import Any

from plinth.core.entity import describe, from_row
from plinth.core.errors import MappingError
from plinth.core.protocols import Cursor


def column_names(cursor: Cursor) -> list[str]:
    """Result column names from a cursor's ``description``."""
    return [desc[0] for desc in (cursor.description or ())]


def fetch_dicts(cursor: Cursor) -> list[dict[str, Any]]:
    """Fetch every remaining row of ``cursor`` as a dict."""
    columns = column_names(cursor)
    return [dict(zip(columns, row, strict=False)) for row in cursor.fetchall()]


class RowSet:
    """Open result cursor yielding row dicts.

    Usable as an iterator and as a context manager.  ``close()`` is
    idempotent.
    """

    def __init__(self, cursor: Cursor, on_close: Callable[[], None] | None = None):
        self._cursor = cursor
        self._on_close = on_close
        self._columns = column_names(cursor)
        self._closed = False

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[dict[str, Any]]:
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def fetchone(self) -> dict[str, Any] | None:
        if self._closed:
            return None
        row = self._cursor.fetchone()
        if row is None:
            return None
        return dict(zip(self._columns, row, strict=False))

    def all(self) -> list[dict[str, Any]]:
        """Remaining rows as a list (leaves the set open)."""
        return list(self)

    def into(self, entity_type: type) -> list[Any]:
        """Materialize the remaining rows as ``entity_type`` instances."""
        dest: list[Any] = []
        materialize_rows(self, dest, entity_type)
        return dest

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._cursor.close()
        finally:
            if self._on_close is not None:
                self._on_close()

    def __enter__(self) -> RowSet:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def materialize_rows(
    rows: Iterable[dict[str, Any]],
    dest: MutableSequence[Any],
    entity_type: type,
) -> MutableSequence[Any]:
    """Append one ``entity_type`` instance per row to ``dest``.

    Result columns are matched to persisted fields case-insensitively by
    column name; unmatched columns are ignored.

    Raises:
        MappingError: If ``dest`` is not a mutable sequence or
            ``entity_type`` is not an entity dataclass.
    """
    if not isinstance(dest, MutableSequence):
        raise MappingError(
            f"Destination must be a mutable sequence, got {type(dest).__name__}"
        ).with_context(operation="materialize")
    describe(entity_type)

    for row in rows:
        dest.append(from_row(entity_type, row))
    return dest


__all__ = [
    "RowSet",
    "column_names",
    "fetch_dicts",
    "materialize_rows",
]
