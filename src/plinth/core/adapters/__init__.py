"""Database adapters -- one interface over MySQL, PostgreSQL and SQLite.

Manifesto:
    Repositories, the schema builder and the migrator must run unchanged on
    MySQL and PostgreSQL in production and SQLite in development and tests.
    The adapter owns placeholder translation, connection borrowing and
    error wrapping so nothing above it touches a driver.

    Each network adapter is **import-guarded**: the driver is only required
    at ``connect()`` time, not at import time.  Install the corresponding
    extra::

        pip install plinth[postgresql]   # psycopg2-binary
        pip install plinth[mysql]        # mysql-connector-python

Architecture::

    DatabaseAdapter (base.py)        Abstract base: execute/query/transactions
        |-- MySQLAdapter             mysql.connector pool (optional)
        |-- PostgreSQLAdapter        psycopg2 pool (optional)
        |-- SQLiteAdapter            stdlib sqlite3 (always available)

    AdapterRegistry (registry.py)    Singleton: driver name -> adapter class
    open_database (registry.py)      Build + connect + ping
    DatabaseConfig (types.py)        Connection parameters, DSN rendering
    DatabaseType (types.py)          Enum of supported backends

Guardrails:
    ❌ ``db.execute("SELECT * FROM t WHERE id=" + user_input)``
    ✅ ``db.execute("SELECT * FROM t WHERE id = ?", [user_input])``
    ❌ Importing optional drivers at module scope
    ✅ Import-guarded at ``connect()`` time with clear ``ConfigError``

Tags:
    database, adapters, multi-backend, import-guarded, registry-pattern
"""

from plinth.core.dialect import Dialect, get_dialect
from plinth.core.protocols import Connection, Cursor

from .base import DatabaseAdapter, Transaction
from .mysql import MySQLAdapter
from .postgresql import PostgreSQLAdapter
from .registry import AdapterRegistry, adapter_registry, get_adapter, open_database
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    # Protocols / Abstractions
    "Connection",
    "Cursor",
    "Dialect",
    "get_dialect",
    # Base class
    "DatabaseAdapter",
    "Transaction",
    # Implementations
    "MySQLAdapter",
    "PostgreSQLAdapter",
    "SQLiteAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
    "open_database",
]
