"""Fluent, parameterized SQL query builder.

A :class:`QueryBuilder` accumulates a statement description and renders it
as ``(sql, binds)`` with anonymous ``?`` placeholders.  Rendering is pure
and clause order is fixed regardless of the order builder methods were
called in.  Execution methods run the rendered statement through a bound
:class:`~plinth.core.adapters.DatabaseAdapter`.

Architecture::

    SELECT [DISTINCT] cols FROM table
      [JOIN ...] [WHERE p1 AND|OR p2 ...] [GROUP BY ...] [HAVING h1 AND h2]
      [ORDER BY ...] [LIMIT n] [OFFSET n] [UNION [ALL] (...)]

    binds = WHERE binds + HAVING binds + UNION binds

Examples:
    >>> QueryBuilder("users").where("age", ">", 18).or_where("vip", "=", True).to_sql()
    ('SELECT * FROM users WHERE age > ? OR vip = ?', [18, True])
    >>> QueryBuilder("users").where_in("id", []).to_sql()
    ('SELECT * FROM users WHERE 1=0', [])

Guardrails:
    ❌ DON'T: Interpolate values into ``where_raw`` text
    ✅ DO: Pass them as binds: ``where_raw("age BETWEEN ? AND ?", 18, 65)``

    ❌ DON'T: Share a builder between threads
    ✅ DO: Build a fresh one per statement (``Repository.query()``)

Tags:
    query-builder, sql, fluent, parameterized
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from plinth.core.errors import ExecutionError

if TYPE_CHECKING:
    from plinth.core.adapters.base import DatabaseAdapter

_DIRECTIONS = ("ASC", "DESC")


@dataclass
class Predicate:
    """One WHERE/HAVING condition with its own binds."""

    sql: str
    binds: list[Any] = field(default_factory=list)
    boolean: str = "AND"


def _as_values(values: Any) -> list[Any]:
    """Bind list for IN / NOT IN; a bare string or bytes value is one bind."""
    if isinstance(values, (str, bytes)):
        return [values]
    return list(values)


def render_predicates(predicates: list[Predicate]) -> tuple[str, list[Any]]:
    """Join predicates; the first is unprefixed, the rest use their own boolean."""
    parts: list[str] = []
    binds: list[Any] = []
    for i, predicate in enumerate(predicates):
        parts.append(predicate.sql if i == 0 else f"{predicate.boolean} {predicate.sql}")
        binds.extend(predicate.binds)
    return " ".join(parts), binds


class QueryBuilder:
    """Accumulating SELECT / INSERT / UPDATE / DELETE builder for one table.

    Every builder method mutates the builder and returns it.
    """

    def __init__(self, table: str, db: DatabaseAdapter | None = None):
        self.table = table
        self.db = db
        self._columns: list[str] = ["*"]
        self._distinct = False
        self._wheres: list[Predicate] = []
        self._joins: list[str] = []
        self._group_bys: list[str] = []
        self._havings: list[Predicate] = []
        self._order_bys: list[str] = []
        self._limit = 0
        self._offset = 0
        self._unions: list[tuple[str, list[Any]]] = []

    # -- Projection --------------------------------------------------------

    def select(self, *columns: str) -> QueryBuilder:
        if columns:
            self._columns = list(columns)
        return self

    def distinct(self) -> QueryBuilder:
        self._distinct = True
        return self

    # -- WHERE -------------------------------------------------------------

    def where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        self._wheres.append(Predicate(f"{column} {operator} ?", [value]))
        return self

    def or_where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        self._wheres.append(Predicate(f"{column} {operator} ?", [value], "OR"))
        return self

    def where_raw(self, sql: str, *binds: Any) -> QueryBuilder:
        self._wheres.append(Predicate(sql, list(binds)))
        return self

    def where_null(self, column: str) -> QueryBuilder:
        self._wheres.append(Predicate(f"{column} IS NULL"))
        return self

    def where_not_null(self, column: str) -> QueryBuilder:
        self._wheres.append(Predicate(f"{column} IS NOT NULL"))
        return self

    def where_in(self, column: str, values: Iterable[Any]) -> QueryBuilder:
        """``column IN (...)``; an empty list matches nothing."""
        values = _as_values(values)
        if not values:
            self._wheres.append(Predicate("1=0"))
            return self
        placeholders = ", ".join("?" for _ in values)
        self._wheres.append(Predicate(f"{column} IN ({placeholders})", values))
        return self

    def where_not_in(self, column: str, values: Iterable[Any]) -> QueryBuilder:
        """``column NOT IN (...)``; an empty list adds no predicate."""
        values = _as_values(values)
        if not values:
            return self
        placeholders = ", ".join("?" for _ in values)
        self._wheres.append(Predicate(f"{column} NOT IN ({placeholders})", values))
        return self

    # -- JOIN --------------------------------------------------------------

    def join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        self._joins.append(f"JOIN {table} ON {first} {operator} {second}")
        return self

    def left_join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        self._joins.append(f"LEFT JOIN {table} ON {first} {operator} {second}")
        return self

    def right_join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        self._joins.append(f"RIGHT JOIN {table} ON {first} {operator} {second}")
        return self

    # -- Grouping / ordering / paging ---------------------------------------

    def group_by(self, *columns: str) -> QueryBuilder:
        self._group_bys.extend(columns)
        return self

    def having(self, column: str, operator: str, value: Any) -> QueryBuilder:
        self._havings.append(Predicate(f"{column} {operator} ?", [value]))
        return self

    def order_by(self, column: str, direction: str = "ASC") -> QueryBuilder:
        direction = (direction or "ASC").upper()
        if direction not in _DIRECTIONS:
            direction = "ASC"
        self._order_bys.append(f"{column} {direction}")
        return self

    def limit(self, n: int) -> QueryBuilder:
        if n >= 0:
            self._limit = n
        return self

    def offset(self, n: int) -> QueryBuilder:
        if n >= 0:
            self._offset = n
        return self

    # -- UNION -------------------------------------------------------------

    def union(self, other: QueryBuilder) -> QueryBuilder:
        sql, binds = other.to_sql()
        self._unions.append((f"UNION ({sql})", binds))
        return self

    def union_all(self, other: QueryBuilder) -> QueryBuilder:
        sql, binds = other.to_sql()
        self._unions.append((f"UNION ALL ({sql})", binds))
        return self

    # -- Rendering ---------------------------------------------------------

    def _where_clause(self) -> tuple[str, list[Any]]:
        if not self._wheres:
            return "", []
        sql, binds = render_predicates(self._wheres)
        return f" WHERE {sql}", binds

    def to_sql(self) -> tuple[str, list[Any]]:
        """Render ``(sql, binds)`` without touching the database."""
        binds: list[Any] = []
        parts = ["SELECT "]
        if self._distinct:
            parts.append("DISTINCT ")
        parts.append(", ".join(self._columns))
        parts.append(f" FROM {self.table}")

        if self._joins:
            parts.append(" " + " ".join(self._joins))

        where_sql, where_binds = self._where_clause()
        parts.append(where_sql)
        binds.extend(where_binds)

        if self._group_bys:
            parts.append(" GROUP BY " + ", ".join(self._group_bys))

        if self._havings:
            having_sql, having_binds = render_predicates(self._havings)
            parts.append(" HAVING " + having_sql)
            binds.extend(having_binds)

        if self._order_bys:
            parts.append(" ORDER BY " + ", ".join(self._order_bys))

        if self._limit > 0:
            parts.append(f" LIMIT {self._limit}")

        if self._offset > 0:
            parts.append(f" OFFSET {self._offset}")

        for union_sql, union_binds in self._unions:
            parts.append(" " + union_sql)
            binds.extend(union_binds)

        return "".join(parts), binds

    def __repr__(self) -> str:
        sql, binds = self.to_sql()
        return f"QueryBuilder({sql!r}, binds={binds!r})"

    # -- Execution ---------------------------------------------------------

    def _require_db(self, operation: str) -> DatabaseAdapter:
        if self.db is None:
            raise ExecutionError(
                "QueryBuilder has no database adapter bound"
            ).with_context(operation=operation, table=self.table)
        return self.db

    def get(self, entity_type: type | None = None) -> list[Any]:
        """Run the SELECT; rows as dicts, or as ``entity_type`` instances."""
        db = self._require_db("get")
        sql, binds = self.to_sql()
        with db.query_rows(sql, binds) as rows:
            if entity_type is None:
                return rows.all()
            return rows.into(entity_type)

    def first(self, entity_type: type | None = None) -> Any | None:
        """Apply ``LIMIT 1`` and return the single row, or ``None``."""
        self.limit(1)
        results = self.get(entity_type)
        return results[0] if results else None

    def count(self) -> int:
        """``COUNT(*)`` over the current WHERE/JOIN state (ORDER BY dropped)."""
        db = self._require_db("count")
        counter = QueryBuilder(self.table, db)
        counter._wheres = list(self._wheres)
        counter._joins = list(self._joins)
        counter._columns = ["COUNT(*) AS count"]
        sql, binds = counter.to_sql()
        row = db.query_one(sql, binds)
        if not row:
            return 0
        return int(next(iter(row.values())))

    def insert(self, values: Mapping[str, Any], key: str | None = None) -> Any:
        """INSERT one row.

        With ``key`` the store-assigned value of that column is returned
        (``RETURNING`` where supported); without it the statement is a plain
        execute and the affected row count is returned.
        """
        if not values:
            raise ExecutionError("No values provided for insert").with_context(
                operation="insert", table=self.table
            )
        db = self._require_db("insert")
        columns = list(values.keys())
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders})"
        if key is None:
            return db.execute(sql, list(values.values()))
        return db.execute_insert(sql, list(values.values()), key=key)

    def update(self, values: Mapping[str, Any]) -> int:
        """UPDATE matching rows; binds are SET values then WHERE binds."""
        if not values:
            raise ExecutionError("No values provided for update").with_context(
                operation="update", table=self.table
            )
        db = self._require_db("update")
        sets = ", ".join(f"{column} = ?" for column in values)
        where_sql, where_binds = self._where_clause()
        sql = f"UPDATE {self.table} SET {sets}{where_sql}"
        return db.execute(sql, [*values.values(), *where_binds])

    def delete(self) -> int:
        """DELETE matching rows."""
        db = self._require_db("delete")
        where_sql, where_binds = self._where_clause()
        return db.execute(f"DELETE FROM {self.table}{where_sql}", where_binds)


__all__ = [
    "Predicate",
    "QueryBuilder",
    "render_predicates",
]
