"""Tests for ``plinth.core.adapters.sqlite`` — statement path, rows and transactions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime

import pytest

from plinth.core.adapters import SQLiteAdapter, Transaction
from plinth.core.entity import Entity, column
from plinth.core.errors import DatabaseConnectionError, ExecutionError, MappingError
from plinth.core.rows import RowSet, materialize_rows


@dataclass
class Item(Entity):
    __tablename__ = "items"

    name: str | None = column("name")
    active: bool | None = column("active")


@pytest.fixture
def items(db):
    db.execute(
        "CREATE TABLE items ("
        "id INTEGER PRIMARY KEY, name VARCHAR(50) NOT NULL, "
        "active BOOLEAN, due DATE, seen_at TIMESTAMP)"
    )
    return db


class TestLifecycle:
    def test_connect_and_disconnect(self):
        adapter = SQLiteAdapter(":memory:")
        assert adapter.is_connected is False
        adapter.connect()
        assert adapter.is_connected is True
        adapter.ping()
        adapter.disconnect()
        assert adapter.is_connected is False

    def test_context_manager(self):
        with SQLiteAdapter() as adapter:
            assert adapter.query_one("SELECT 1 AS one") == {"one": 1}
        assert adapter.is_connected is False

    def test_connect_failure(self, tmp_path):
        adapter = SQLiteAdapter(str(tmp_path / "missing" / "dir" / "db.sqlite"))
        with pytest.raises(DatabaseConnectionError, match="Failed to connect"):
            adapter.connect()

    def test_db_type_and_dialect(self, db):
        assert db.db_type.value == "sqlite"
        assert db.dialect.name == "sqlite"


class TestStatements:
    def test_execute_returns_rowcount(self, items):
        items.execute("INSERT INTO items (name) VALUES (?)", ["a"])
        items.execute("INSERT INTO items (name) VALUES (?)", ["b"])
        assert items.execute("UPDATE items SET name = ?", ["c"]) == 2

    def test_execute_insert_returns_new_id(self, items):
        first = items.execute_insert("INSERT INTO items (name) VALUES (?)", ["a"])
        second = items.execute_insert("INSERT INTO items (name) VALUES (?)", ["b"])
        assert (first, second) == (1, 2)

    def test_query_returns_dicts(self, items):
        items.execute("INSERT INTO items (name) VALUES (?)", ["a"])
        assert items.query("SELECT id, name FROM items") == [{"id": 1, "name": "a"}]

    def test_query_one_none_when_empty(self, items):
        assert items.query_one("SELECT * FROM items WHERE id = ?", [99]) is None

    def test_declared_types_round_trip(self, items):
        seen = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)
        items.execute(
            "INSERT INTO items (name, active, due, seen_at) VALUES (?, ?, ?, ?)",
            ["a", True, date(2024, 6, 1), seen],
        )
        row = items.query_one("SELECT active, due, seen_at FROM items")
        assert row == {"active": True, "due": date(2024, 6, 1), "seen_at": seen}

    def test_failure_wraps_driver_error(self, db):
        with pytest.raises(ExecutionError) as exc_info:
            db.execute("INSERT INTO missing (x) VALUES (?)", [1])
        err = exc_info.value
        assert err.context.sql == "INSERT INTO missing (x) VALUES (?)"
        assert err.context.driver == "sqlite"
        assert err.cause is not None


class TestRowSet:
    def test_query_rows_iterates_and_closes(self, items):
        for name in ("a", "b", "c"):
            items.execute("INSERT INTO items (name) VALUES (?)", [name])

        with items.query_rows("SELECT name FROM items ORDER BY id") as rows:
            assert isinstance(rows, RowSet)
            assert rows.columns == ["name"]
            assert [r["name"] for r in rows] == ["a", "b", "c"]
        assert rows.closed is True

    def test_into_entities(self, items):
        items.execute("INSERT INTO items (name, active) VALUES (?, ?)", ["a", True])
        with items.query_rows("SELECT id, name, active FROM items") as rows:
            (item,) = rows.into(Item)
        assert (item.id, item.name, item.active) == (1, "a", True)

    def test_materialize_appends_to_destination(self, items):
        items.execute("INSERT INTO items (name) VALUES (?)", ["a"])
        dest = [Item(name="existing")]
        with items.query_rows("SELECT id, name FROM items") as rows:
            materialize_rows(rows, dest, Item)
        assert [i.name for i in dest] == ["existing", "a"]

    @pytest.mark.parametrize("dest", [(), {}, "items"])
    def test_materialize_rejects_non_mutable_destination(self, dest):
        with pytest.raises(MappingError, match="mutable sequence"):
            materialize_rows([{"id": 1, "name": "a"}], dest, Item)

    def test_materialize_rejects_non_entity_type(self):
        with pytest.raises(MappingError):
            materialize_rows([{"id": 1}], [], dict)

    def test_closed_rowset_yields_nothing(self, items):
        items.execute("INSERT INTO items (name) VALUES (?)", ["a"])
        rows = items.query_rows("SELECT name FROM items")
        rows.close()
        rows.close()
        assert rows.all() == []


class TestTransactions:
    def test_commit(self, items):
        with items.transaction() as tx:
            assert isinstance(tx, Transaction)
            tx.execute("INSERT INTO items (name) VALUES (?)", ["a"])
            tx.execute("INSERT INTO items (name) VALUES (?)", ["b"])
        assert len(items.query("SELECT * FROM items")) == 2

    def test_rollback_on_exception(self, items):
        with pytest.raises(RuntimeError):
            with items.transaction() as tx:
                tx.execute("INSERT INTO items (name) VALUES (?)", ["a"])
                raise RuntimeError("boom")
        assert items.query("SELECT * FROM items") == []

    def test_explicit_begin_and_rollback(self, items):
        tx = items.begin()
        tx.execute_insert("INSERT INTO items (name) VALUES (?)", ["a"])
        assert tx.query_one("SELECT COUNT(*) AS n FROM items") == {"n": 1}
        tx.rollback()
        assert tx.active is False
        assert items.query_one("SELECT COUNT(*) AS n FROM items") == {"n": 0}

    def test_finished_transaction_rejects_statements(self, items):
        tx = items.begin()
        tx.commit()
        with pytest.raises(ExecutionError, match="already finished"):
            tx.execute("INSERT INTO items (name) VALUES (?)", ["a"])
