"""DDL schema builder.

:class:`Schema` renders and executes CREATE / ALTER / DROP / RENAME TABLE
statements from a :class:`Blueprint` populated by a callback.  Column
helpers return the :class:`Column` stored in the blueprint, so modifiers
chain onto it directly.

Architecture::

    schema.create("users", build)
        │
        ├── Blueprint("users")  ◄── build(bp): bp.id(); bp.string("email").unique()
        │
        ├── render columns      `email` VARCHAR(255) NOT NULL UNIQUE
        ├── PRIMARY KEY (`id`)
        ├── indexes             INDEX `idx_users_email` (`email`)
        └── table options       ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 ...  (MySQL)

Examples:
    >>> def build(t):
    ...     t.id()
    ...     t.string("email").unique()
    ...     t.timestamps()
    >>> Schema().create_sql("users", build)
    'CREATE TABLE `users` (`id` BIGINT NOT NULL AUTO_INCREMENT, `email` VARCHAR(255) NOT NULL UNIQUE, `created_at` TIMESTAMP NULL, `updated_at` TIMESTAMP NULL, PRIMARY KEY (`id`)) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci'

Guardrails:
    ❌ DON'T: Build a blueprint and keep it around after rendering
    ✅ DO: Describe the table inside the callback; the blueprint is transient

    ❌ DON'T: Expect UNSIGNED / COMMENT / AFTER on PostgreSQL or SQLite
    ✅ DO: Rely on the dialect dropping what the store cannot express

Tags:
    schema, ddl, blueprint, migrations
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from plinth.core.dialect import Dialect, MySQLDialect
from plinth.core.errors import ExecutionError
from plinth.core.logging import get_logger

if TYPE_CHECKING:
    from plinth.core.adapters.base import DatabaseAdapter

logger = get_logger(__name__)

DEFAULT_ENGINE = "InnoDB"
DEFAULT_CHARSET = "utf8mb4"
DEFAULT_COLLATION = "utf8mb4_unicode_ci"


@dataclass(eq=False)
class Column:
    """One column definition.  Modifiers mutate and return the column."""

    name: str
    column_type: str
    length: int = 0
    is_nullable: bool = False
    default_value: Any = None
    is_unsigned: bool = False
    is_unique: bool = False
    is_indexed: bool = False
    is_primary: bool = False
    auto_increment: bool = False
    comment_text: str = ""
    after_column: str = ""
    is_first: bool = False

    def nullable(self) -> Column:
        self.is_nullable = True
        return self

    def default(self, value: Any) -> Column:
        self.default_value = value
        return self

    def unsigned(self) -> Column:
        self.is_unsigned = True
        return self

    def unique(self) -> Column:
        self.is_unique = True
        return self

    def index(self) -> Column:
        self.is_indexed = True
        return self

    def comment(self, text: str) -> Column:
        self.comment_text = text
        return self

    def after(self, column: str) -> Column:
        self.after_column = column
        return self

    def first(self) -> Column:
        self.is_first = True
        return self

    def primary(self) -> Column:
        self.is_primary = True
        return self


@dataclass
class Index:
    name: str
    columns: list[str]
    unique: bool = False


@dataclass
class Blueprint:
    """Column, index and option description of one table."""

    table: str
    columns: list[Column] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)
    primary_columns: list[str] = field(default_factory=list)
    table_engine: str = ""
    table_charset: str = ""
    table_collation: str = ""
    is_temporary: bool = False

    def _add(self, column: Column) -> Column:
        self.columns.append(column)
        return column

    # -- Column helpers ----------------------------------------------------

    def id(self) -> Column:
        """Auto-incrementing ``BIGINT`` primary key named ``id``."""
        self.primary("id")
        return self.big_integer("id", auto_increment=True)

    def string(self, name: str, length: int = 255) -> Column:
        return self._add(Column(name, "VARCHAR", length=length))

    def text(self, name: str) -> Column:
        return self._add(Column(name, "TEXT"))

    def integer(self, name: str, auto_increment: bool = False) -> Column:
        return self._add(Column(name, "INTEGER", auto_increment=auto_increment))

    def big_integer(self, name: str, auto_increment: bool = False) -> Column:
        return self._add(Column(name, "BIGINT", auto_increment=auto_increment))

    def boolean(self, name: str) -> Column:
        return self._add(Column(name, "BOOLEAN"))

    def date(self, name: str) -> Column:
        return self._add(Column(name, "DATE"))

    def date_time(self, name: str) -> Column:
        return self._add(Column(name, "TIMESTAMP"))

    def decimal(self, name: str, precision: int = 8, scale: int = 2) -> Column:
        return self._add(Column(name, f"DECIMAL({precision},{scale})"))

    def float(self, name: str) -> Column:
        return self._add(Column(name, "FLOAT"))

    def json(self, name: str) -> Column:
        return self._add(Column(name, "JSON"))

    # -- Composites --------------------------------------------------------

    def timestamps(self) -> None:
        """Nullable ``created_at`` and ``updated_at``."""
        self.date_time("created_at").nullable()
        self.date_time("updated_at").nullable()

    def timestamps_tz(self) -> None:
        self.timestamps()

    def soft_deletes(self) -> Column:
        return self.date_time("deleted_at").nullable()

    # -- Keys and indexes --------------------------------------------------

    def primary(self, *columns: str) -> None:
        self.primary_columns = list(columns)

    def index(self, *columns: str) -> None:
        name = f"idx_{self.table}_{'_'.join(columns)}"
        self.indexes.append(Index(name, list(columns)))

    def unique(self, *columns: str) -> None:
        name = f"unq_{self.table}_{'_'.join(columns)}"
        self.indexes.append(Index(name, list(columns), unique=True))

    # -- Table options -----------------------------------------------------

    def engine(self, engine: str) -> Blueprint:
        self.table_engine = engine
        return self

    def charset(self, charset: str) -> Blueprint:
        self.table_charset = charset
        return self

    def collation(self, collation: str) -> Blueprint:
        self.table_collation = collation
        return self

    def temporary(self) -> Blueprint:
        self.is_temporary = True
        return self

    def all_indexes(self) -> list[Index]:
        """Declared indexes followed by one per ``Column.index()`` flag."""
        declared = list(self.indexes)
        names = {idx.name for idx in declared}
        for column in self.columns:
            if column.is_indexed:
                name = f"idx_{self.table}_{column.name}"
                if name not in names:
                    declared.append(Index(name, [column.name]))
                    names.add(name)
        return declared

    def primary_key(self) -> list[str]:
        if self.primary_columns:
            return list(self.primary_columns)
        return [c.name for c in self.columns if c.is_primary]


def render_default(value: Any) -> str:
    """SQL literal for a column default."""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    return str(value)


class SchemaGrammar:
    """Renders blueprints to DDL statements for one dialect."""

    def __init__(self, dialect: Dialect):
        self.dialect = dialect

    def _quote_list(self, columns: list[str]) -> str:
        return ", ".join(self.dialect.quote(c) for c in columns)

    def column_definition(self, column: Column) -> str:
        d = self.dialect
        column_type = column.column_type
        suffix = ""
        if column.auto_increment:
            column_type, suffix = d.auto_increment(column_type)

        parts = [f"{d.quote(column.name)} {column_type}"]
        if column.length > 0:
            parts[0] += f"({column.length})"
        if column.is_unsigned and d.supports_unsigned:
            parts.append("UNSIGNED")
        parts.append("NULL" if column.is_nullable else "NOT NULL")
        if column.default_value is not None:
            parts.append(f"DEFAULT {render_default(column.default_value)}")
        if suffix:
            parts.append(suffix)
        if column.is_unique:
            parts.append("UNIQUE")
        if column.comment_text and d.supports_column_comments:
            parts.append("COMMENT '" + column.comment_text.replace("'", "''") + "'")
        return " ".join(parts)

    def _create_index(self, table: str, index: Index) -> str:
        kind = "UNIQUE INDEX" if index.unique else "INDEX"
        return (
            f"CREATE {kind} {self.dialect.quote(index.name)} "
            f"ON {self.dialect.quote(table)} ({self._quote_list(index.columns)})"
        )

    def compile_create(self, bp: Blueprint) -> list[str]:
        d = self.dialect
        definitions = [self.column_definition(c) for c in bp.columns]

        primary = bp.primary_key()
        if primary:
            definitions.append(f"PRIMARY KEY ({self._quote_list(primary)})")

        trailing: list[str] = []
        for index in bp.all_indexes():
            cols = self._quote_list(index.columns)
            if d.supports_inline_indexes:
                kind = "UNIQUE INDEX" if index.unique else "INDEX"
                definitions.append(f"{kind} {d.quote(index.name)} ({cols})")
            elif index.unique:
                definitions.append(f"CONSTRAINT {d.quote(index.name)} UNIQUE ({cols})")
            else:
                trailing.append(self._create_index(bp.table, index))

        keyword = "CREATE TEMPORARY TABLE" if bp.is_temporary else "CREATE TABLE"
        sql = f"{keyword} {d.quote(bp.table)} ({', '.join(definitions)})"

        if d.supports_table_options:
            if bp.table_engine:
                sql += f" ENGINE={bp.table_engine}"
            if bp.table_charset:
                sql += f" DEFAULT CHARSET={bp.table_charset}"
            if bp.table_collation:
                sql += f" COLLATE={bp.table_collation}"

        return [sql, *trailing]

    def compile_alter(self, bp: Blueprint) -> list[str]:
        d = self.dialect
        table = d.quote(bp.table)

        additions = []
        for column in bp.columns:
            clause = f"ADD COLUMN {self.column_definition(column)}"
            if d.supports_column_position:
                if column.after_column:
                    clause += f" AFTER {d.quote(column.after_column)}"
                elif column.is_first:
                    clause += " FIRST"
            additions.append(clause)

        if d.supports_inline_indexes:
            for index in bp.all_indexes():
                kind = "ADD UNIQUE INDEX" if index.unique else "ADD INDEX"
                additions.append(f"{kind} {d.quote(index.name)} ({self._quote_list(index.columns)})")
            if not additions:
                return []
            return [f"ALTER TABLE {table} {', '.join(additions)}"]

        statements = [f"ALTER TABLE {table} {clause}" for clause in additions]
        statements.extend(self._create_index(bp.table, index) for index in bp.all_indexes())
        return statements

    def compile_drop_if_exists(self, table: str) -> str:
        return f"DROP TABLE IF EXISTS {self.dialect.quote(table)}"

    def compile_rename(self, from_table: str, to_table: str) -> str:
        return f"ALTER TABLE {self.dialect.quote(from_table)} RENAME TO {self.dialect.quote(to_table)}"


BlueprintCallback = Callable[[Blueprint], Any]


class Schema:
    """Table-level DDL over an adapter.

    Parameters:
        db: Adapter used by the executing methods.  May be ``None`` when
            only the ``*_sql`` renderers are needed.
        dialect: Rendering dialect; defaults to the adapter's, else MySQL.
    """

    def __init__(self, db: DatabaseAdapter | None = None, dialect: Dialect | None = None):
        self.db = db
        if dialect is None:
            dialect = db.dialect if db is not None else MySQLDialect()
        self.dialect = dialect
        self.grammar = SchemaGrammar(dialect)

    def _require_db(self, operation: str, table: str) -> DatabaseAdapter:
        if self.db is None:
            raise ExecutionError(
                "Schema has no database adapter bound"
            ).with_context(operation=operation, table=table)
        return self.db

    def _run(self, operation: str, table: str, statements: list[str]) -> str:
        db = self._require_db(operation, table)
        for sql in statements:
            try:
                db.execute(sql)
            except ExecutionError as e:
                raise e.with_context(operation=operation, table=table)
        logger.info(f"schema.{operation}", table=table)
        return ";\n".join(statements)

    # -- CREATE ------------------------------------------------------------

    def _create_statements(self, table: str, build: BlueprintCallback) -> list[str]:
        bp = Blueprint(
            table,
            table_engine=DEFAULT_ENGINE,
            table_charset=DEFAULT_CHARSET,
            table_collation=DEFAULT_COLLATION,
        )
        build(bp)
        return self.grammar.compile_create(bp)

    def create_sql(self, table: str, build: BlueprintCallback) -> str:
        """Render CREATE TABLE (plus any separate index statements) without executing."""
        return ";\n".join(self._create_statements(table, build))

    def create(self, table: str, build: BlueprintCallback) -> str:
        """Create ``table``; returns the executed DDL."""
        return self._run("create", table, self._create_statements(table, build))

    # -- ALTER -------------------------------------------------------------

    def _alter_statements(self, table: str, build: BlueprintCallback) -> list[str]:
        bp = Blueprint(table)
        build(bp)
        return self.grammar.compile_alter(bp)

    def table_sql(self, table: str, build: BlueprintCallback) -> str:
        return ";\n".join(self._alter_statements(table, build))

    def table(self, table: str, build: BlueprintCallback) -> str:
        """Add columns and indexes to an existing table."""
        return self._run("alter", table, self._alter_statements(table, build))

    # -- DROP / RENAME -----------------------------------------------------

    def drop_sql(self, table: str) -> str:
        return self.grammar.compile_drop_if_exists(table)

    def drop(self, table: str) -> str:
        return self._run("drop", table, [self.drop_sql(table)])

    def drop_if_exists_sql(self, table: str) -> str:
        return self.drop_sql(table)

    def drop_if_exists(self, table: str) -> str:
        return self.drop(table)

    def rename_sql(self, from_table: str, to_table: str) -> str:
        return self.grammar.compile_rename(from_table, to_table)

    def rename(self, from_table: str, to_table: str) -> str:
        return self._run("rename", from_table, [self.rename_sql(from_table, to_table)])

    # -- Introspection -----------------------------------------------------

    def has_table(self, table: str) -> bool:
        db = self._require_db("has_table", table)
        return db.query_one(self.dialect.table_exists_query(), [table]) is not None


__all__ = [
    "Blueprint",
    "Column",
    "Index",
    "Schema",
    "SchemaGrammar",
    "render_default",
]
