"""
DB-API shapes the connection layer relies on.

The adapters only touch what PEP 249 guarantees for ``sqlite3``,
``psycopg2`` and ``mysql.connector`` alike: ``cursor()``, ``commit()``,
``rollback()`` and ``close()`` on connections; ``execute()``,
``fetchone()``, ``fetchall()``, ``description``, ``rowcount`` and
``lastrowid`` on cursors.

Guardrails:
    ❌ DON'T: Call driver-specific extensions (``cursor(dictionary=True)``,
       ``RealDictCursor``) from shared code
    ✅ DO: Build row dicts from ``cursor.description``

Tags:
    protocol, connection, cursor, dbapi, plinth
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """Minimal PEP 249 cursor."""

    description: Sequence[Sequence[Any]] | None
    rowcount: int
    lastrowid: Any

    def execute(self, sql: str, params: Any = ...) -> Any: ...

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list[Any]: ...

    def close(self) -> Any: ...


@runtime_checkable
class Connection(Protocol):
    """Minimal PEP 249 connection."""

    def cursor(self) -> Cursor: ...

    def commit(self) -> Any: ...

    def rollback(self) -> Any: ...

    def close(self) -> Any: ...


__all__ = [
    "Connection",
    "Cursor",
]
