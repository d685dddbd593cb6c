"""Tests for ``plinth.core.repository`` — generic CRUD over SQLite."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from plinth.core.dialect import SQLiteDialect
from plinth.core.entity import Entity, column, transient
from plinth.core.errors import ExecutionError, MappingError, RecordNotFoundError
from plinth.core.repository import Repository
from plinth.core.schema import Schema


@dataclass
class User(Entity):
    __tablename__ = "users"

    name: str | None = column("name")
    email: str | None = column("email")
    active: bool = column("active", default=True)
    password_confirmation: str | None = transient()


def _users_table(t):
    t.id()
    t.string("name", 100)
    t.string("email").unique()
    t.boolean("active").default(True)
    t.timestamps()


@pytest.fixture
def users(db):
    Schema(db).create("users", _users_table)
    return Repository(User, db)


class TestCreate:
    def test_assigns_id_and_timestamps(self, users):
        user = users.create(User(name="Ada", email="ada@example.com"))

        assert user.id == 1
        assert isinstance(user.created_at, datetime)
        assert user.created_at == user.updated_at

    def test_round_trip(self, users):
        created = users.create(User(name="Ada", email="ada@example.com", active=False))

        found = users.find_by_id(created.id)

        assert found == User(
            id=created.id,
            created_at=created.created_at,
            updated_at=created.updated_at,
            name="Ada",
            email="ada@example.com",
            active=False,
        )

    def test_transient_field_not_written(self, users):
        users.create(User(name="Ada", email="ada@example.com", password_confirmation="x"))
        row = users.db.query_one("SELECT * FROM users")
        assert "password_confirmation" not in row

    def test_unique_violation_annotated(self, users):
        users.create(User(name="Ada", email="ada@example.com"))

        with pytest.raises(ExecutionError) as exc_info:
            users.create(User(name="Imposter", email="ada@example.com"))

        assert exc_info.value.context.operation == "create"
        assert exc_info.value.context.table == "users"


class TestFind:
    def test_find_by_column(self, users):
        users.create(User(name="Ada", email="ada@example.com"))
        grace = users.create(User(name="Grace", email="grace@example.com"))

        assert users.find_by_column("email", "grace@example.com").id == grace.id
        assert users.find_by_column("email", "nobody@example.com") is None

    def test_find_by_id_missing(self, users):
        assert users.find_by_id(99) is None

    def test_find_by_id_or_fail(self, users):
        with pytest.raises(RecordNotFoundError) as exc_info:
            users.find_by_id_or_fail(99)
        assert exc_info.value.key == 99
        assert exc_info.value.context.table == "users"

    def test_find_all_with_condition(self, users):
        users.create(User(name="Ada", email="ada@example.com"))
        users.create(User(name="Grace", email="grace@example.com", active=False))
        users.create(User(name="Linus", email="linus@example.com"))

        assert [u.name for u in users.find_all()] == ["Ada", "Grace", "Linus"]
        assert [u.name for u in users.find_all("active = ?", True)] == ["Ada", "Linus"]

    def test_query_builder_bound_to_table(self, users):
        users.create(User(name="Ada", email="ada@example.com"))
        assert users.query().count() == 1


class TestUpdateDelete:
    def test_update_keeps_id_and_created_at(self, users):
        user = users.create(User(name="Ada", email="ada@example.com"))
        original_created = user.created_at

        user.name = "Ada Lovelace"
        user.created_at = datetime(2000, 1, 1)
        assert users.update(user) == 1

        stored = users.find_by_id(user.id)
        assert stored.name == "Ada Lovelace"
        assert stored.created_at == original_created
        assert stored.updated_at >= original_created

    def test_update_statement_shape(self):
        db = MagicMock()
        db.dialect = SQLiteDialect()
        db.execute.return_value = 1
        repo = Repository(User, db)

        repo.update(User(id=5, name="Ada", email="ada@example.com"))

        sql, binds = db.execute.call_args.args
        assert sql == "UPDATE users SET updated_at = ?, name = ?, email = ?, active = ? WHERE id = ?"
        assert binds[1:] == ["Ada", "ada@example.com", True, 5]

    def test_delete(self, users):
        user = users.create(User(name="Ada", email="ada@example.com"))
        assert users.delete(user) == 1
        assert users.find_by_id(user.id) is None

    @pytest.mark.parametrize("operation", ["update", "delete"])
    def test_missing_id_rejected(self, users, operation):
        with pytest.raises(MappingError, match="without an id"):
            getattr(users, operation)(User(name="Ada"))


class TestConstruction:
    def test_non_entity_rejected(self, db):
        with pytest.raises(MappingError):
            Repository(dict, db)
