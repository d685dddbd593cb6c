"""SQL dialect abstraction for driver-agnostic statement rendering.

The query builder and repository render statements with anonymous ``?``
placeholders.  A ``Dialect`` knows how the target driver spells
placeholders, how identifiers are quoted in DDL, and which MySQL-flavoured
column features (``UNSIGNED``, inline ``COMMENT``, ``FIRST``/``AFTER``,
``ENGINE=``) the store understands.

Architecture::

    QueryBuilder / Repository / Schema
             │   "SELECT * FROM users WHERE id = ?"
             ▼
    ┌──────────────┐ ┌──────────────┐ ┌──────────────┐
    │ MySQL        │ │ PostgreSQL   │ │ SQLite       │
    │ %s  `ident`  │ │ %s  "ident"  │ │ ?   `ident`  │
    │ AUTO_INCR.   │ │ BIGSERIAL    │ │ rowid alias  │
    │ ENGINE=...   │ │ RETURNING id │ │ (dev/tests)  │
    └──────────────┘ └──────────────┘ └──────────────┘

Examples:
    >>> d = get_dialect("mysql")
    >>> d.format_placeholders("SELECT * FROM t WHERE a = ? AND b LIKE '50%'")
    "SELECT * FROM t WHERE a = %s AND b LIKE '50%%'"
    >>> d.quote("users")
    '`users`'

Guardrails:
    ❌ DON'T: Write ``%s`` into builder output
    ✅ DO: Render ``?`` and let the adapter translate through its dialect

Tags:
    dialect, sql, placeholders, ddl, portability
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

from plinth.core.errors import ConfigError

# Single-quoted literals (with '' escapes) or a bare placeholder.
_PLACEHOLDER_RE = re.compile(r"'(?:[^']|'')*'|\?")


def _to_format_style(sql: str) -> str:
    """Rewrite ``?`` placeholders to ``%s`` and escape literal ``%``.

    Question marks inside single-quoted literals are left alone.
    """
    escaped = sql.replace("%", "%%")
    return _PLACEHOLDER_RE.sub(
        lambda m: m.group(0) if m.group(0).startswith("'") else "%s",
        escaped,
    )


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract."""

    @property
    def name(self) -> str:
        """Dialect name (``'mysql'``, ``'postgresql'``, ``'sqlite'``)."""
        ...

    # -- Placeholders ------------------------------------------------------

    def format_placeholders(self, sql: str) -> str:
        """Translate a ``?``-style statement to the driver's paramstyle."""
        ...

    # -- Identifiers -------------------------------------------------------

    def quote(self, identifier: str) -> str:
        """Quote an identifier for DDL."""
        ...

    # -- DDL capabilities --------------------------------------------------

    supports_unsigned: bool
    supports_column_comments: bool
    supports_column_position: bool
    supports_table_options: bool
    supports_returning: bool
    supports_inline_indexes: bool

    def auto_increment(self, column_type: str) -> tuple[str, str]:
        """Return ``(type, suffix)`` for an auto-incrementing integer column."""
        ...

    def table_exists_query(self) -> str:
        """Query returning a row when the table named by the single ``?`` bind exists."""
        ...


class MySQLDialect:
    """MySQL dialect — ``%s`` placeholders, back-quoted identifiers.

    Compatible with ``mysql.connector`` and ``PyMySQL`` (both use the
    ``format`` paramstyle).
    """

    supports_unsigned = True
    supports_column_comments = True
    supports_column_position = True
    supports_table_options = True
    supports_returning = False
    supports_inline_indexes = True

    @property
    def name(self) -> str:
        return "mysql"

    def format_placeholders(self, sql: str) -> str:
        return _to_format_style(sql)

    def quote(self, identifier: str) -> str:
        return f"`{identifier}`"

    def auto_increment(self, column_type: str) -> tuple[str, str]:
        return column_type, "AUTO_INCREMENT"

    def table_exists_query(self) -> str:
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = DATABASE() AND table_name = ?"
        )


class PostgreSQLDialect:
    """PostgreSQL dialect — ``%s`` placeholders (psycopg2), double-quoted identifiers.

    Auto-increment columns become ``SERIAL``/``BIGSERIAL`` and inserts read
    the new key back with ``RETURNING``.
    """

    supports_unsigned = False
    supports_column_comments = False
    supports_column_position = False
    supports_table_options = False
    supports_returning = True
    supports_inline_indexes = False

    @property
    def name(self) -> str:
        return "postgresql"

    def format_placeholders(self, sql: str) -> str:
        return _to_format_style(sql)

    def quote(self, identifier: str) -> str:
        return f'"{identifier}"'

    def auto_increment(self, column_type: str) -> tuple[str, str]:
        if column_type == "BIGINT":
            return "BIGSERIAL", ""
        return "SERIAL", ""

    def table_exists_query(self) -> str:
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = ?"
        )


class SQLiteDialect:
    """SQLite dialect — ``?`` placeholders, used for development and tests.

    SQLite accepts back-quoted identifiers.  An ``INTEGER`` column named in
    a single-column primary key aliases the rowid, which gives
    auto-increment behavior without a column suffix.
    """

    supports_unsigned = False
    supports_column_comments = False
    supports_column_position = False
    supports_table_options = False
    supports_returning = False
    supports_inline_indexes = False

    @property
    def name(self) -> str:
        return "sqlite"

    def format_placeholders(self, sql: str) -> str:
        return sql

    def quote(self, identifier: str) -> str:
        return f"`{identifier}`"

    def auto_increment(self, column_type: str) -> tuple[str, str]:  # noqa: ARG002
        return "INTEGER", ""

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?"


# =========================================================================
# Registry
# =========================================================================

_DIALECTS: dict[str, Dialect] = {
    "mysql": MySQLDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # Alias
    "sqlite": SQLiteDialect(),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Args:
        db_type: One of ``'mysql'``, ``'postgresql'``, ``'postgres'``, ``'sqlite'``.

    Raises:
        ConfigError: If ``db_type`` is not recognised.

    Example:
        >>> get_dialect("postgres").quote("users")
        '"users"'
    """
    key = db_type.lower() if isinstance(db_type, str) else db_type.value
    if key not in _DIALECTS:
        raise ConfigError(
            f"Unsupported database driver '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        ).with_context(driver=str(db_type))
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (e.g. a test double)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "MySQLDialect",
    "PostgreSQLDialect",
    "SQLiteDialect",
    "get_dialect",
    "register_dialect",
]
