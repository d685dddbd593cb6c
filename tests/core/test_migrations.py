"""Tests for ``plinth.core.migrations`` — registry, batches and rollback."""

from __future__ import annotations

import pytest

from plinth.core.errors import (
    InvalidMigrationNameError,
    MigrationError,
    MigrationNotFoundError,
)
from plinth.core.migrations import (
    MIGRATIONS_TABLE,
    Migration,
    MigrationRegistry,
    Migrator,
    default_registry,
    migration,
)

USERS = "20240101000000_create_users_table"
POSTS = "20240102000000_create_posts_table"
TAGS = "20240103000000_create_tags_table"


def _create(table):
    def up(m):
        m.schema.create(table, lambda t: (t.id(), t.string("name"), t.timestamps()))

    return up


def _drop(table):
    def down(m):
        m.schema.drop_if_exists(table)

    return down


@pytest.fixture
def blog(registry):
    registry.register(USERS, up=_create("users"), down=_drop("users"))
    registry.register(POSTS, up=_create("posts"), down=_drop("posts"))
    return registry


class TestRegistry:
    def test_names_sorted(self, registry):
        registry.register(POSTS, up=_create("posts"), down=_drop("posts"))
        registry.register(USERS, up=_create("users"), down=_drop("users"))
        assert registry.names() == [USERS, POSTS]
        assert USERS in registry
        assert len(registry) == 2

    @pytest.mark.parametrize("name", ["create_users", "2024_", "abc_def", "2024-01_x"])
    def test_invalid_names(self, registry, name):
        with pytest.raises(InvalidMigrationNameError):
            registry.register(name, up=_create("t"), down=_drop("t"))

    def test_duplicate_rejected(self, blog):
        with pytest.raises(MigrationError, match="already registered"):
            blog.register(USERS, up=_create("users"), down=_drop("users"))

    def test_missing_steps_rejected(self, registry):
        with pytest.raises(MigrationError, match="both up and down"):
            registry.register(USERS, up=_create("users"))

    def test_get_unknown(self, registry):
        with pytest.raises(MigrationNotFoundError, match="Migration not found: 1_nope"):
            registry.get("1_nope")

    def test_decorator_registers_class(self):
        @migration(TAGS)
        class CreateTagsTable(Migration):
            def up(self, migrator):
                migrator.schema.create("tags", lambda t: t.id())

            def down(self, migrator):
                migrator.schema.drop_if_exists("tags")

        unit = default_registry.get(TAGS)
        assert isinstance(unit, CreateTagsTable)
        assert unit.name == TAGS

    def test_decorator_with_private_registry(self):
        private = MigrationRegistry()

        @migration(TAGS, registry=private)
        class CreateTagsTable(Migration):
            pass

        assert TAGS in private
        assert TAGS not in default_registry

    def test_decorated_unit_runs_from_private_registry(self, db):
        private = MigrationRegistry()
        assert not private

        @migration(TAGS, registry=private)
        class CreateTagsTable(Migration):
            def up(self, migrator):
                _create("tags")(migrator)

            def down(self, migrator):
                _drop("tags")(migrator)

        result = Migrator(db, private).run()

        assert result.names == [TAGS]
        assert TAGS not in default_registry
        assert db.query("SELECT * FROM tags") == []


class TestRun:
    def test_applies_pending_in_one_batch(self, db, blog, migrator):
        result = migrator.run()

        assert result.success
        assert result.names == [USERS, POSTS]
        assert result.batch == 1
        assert migrator.schema.has_table("users")
        assert migrator.schema.has_table("posts")

        records = migrator.applied()
        assert [(r.name, r.batch) for r in records] == [(USERS, 1), (POSTS, 1)]
        assert all(r.created_at is not None for r in records)

    def test_second_run_is_a_noop(self, blog, migrator):
        migrator.run()
        result = migrator.run()
        assert result.count == 0
        assert result.batch is None
        assert result.success

    def test_new_units_get_next_batch(self, blog, migrator):
        migrator.run()
        blog.register(TAGS, up=_create("tags"), down=_drop("tags"))

        result = migrator.run()

        assert result.names == [TAGS]
        assert result.batch == 2

    def test_run_subset_of_names(self, blog, migrator):
        result = migrator.run([USERS])
        assert result.names == [USERS]
        assert migrator.pending() == [POSTS]

    def test_failure_keeps_earlier_units(self, db, blog, migrator):
        def broken(m):
            raise RuntimeError("disk full")

        blog.register(TAGS, up=broken, down=_drop("tags"))

        result = migrator.run()

        assert result.success is False
        assert result.names == [USERS, POSTS]
        assert isinstance(result.error, MigrationError)
        assert "failed during up: disk full" in result.error.message
        assert result.error.context.migration == TAGS
        assert migrator.pending() == [TAGS]

    def test_unknown_requested_name(self, blog, migrator):
        result = migrator.run(["20990101000000_missing"])
        assert isinstance(result.error, MigrationNotFoundError)
        assert result.names == []


class TestRollback:
    def _two_batches(self, blog, migrator):
        migrator.run()
        blog.register(TAGS, up=_create("tags"), down=_drop("tags"))
        migrator.run()

    def test_rollback_last_batch(self, blog, migrator):
        self._two_batches(blog, migrator)

        result = migrator.rollback(step=1)

        assert result.names == [TAGS]
        assert result.batch == 2
        assert not migrator.schema.has_table("tags")
        assert migrator.schema.has_table("users")

    def test_rollback_all_batches_newest_first(self, blog, migrator):
        self._two_batches(blog, migrator)

        result = migrator.rollback()

        assert result.names == [TAGS, POSTS, USERS]
        assert migrator.applied() == []

    def test_step_larger_than_batches_reverts_everything(self, blog, migrator):
        self._two_batches(blog, migrator)
        assert migrator.rollback(step=5).count == 3

    def test_nothing_to_rollback(self, migrator):
        result = migrator.rollback(step=1)
        assert result.success
        assert result.count == 0

    def test_unregistered_record_reported(self, db, blog, migrator):
        migrator.run()
        db.execute(
            f"INSERT INTO {MIGRATIONS_TABLE} (name, batch) VALUES (?, ?)",
            ["20990101000000_ghost", 2],
        )

        result = migrator.rollback(step=1)

        assert isinstance(result.error, MigrationNotFoundError)
        assert result.error.name == "20990101000000_ghost"
        assert result.count == 0

    def test_reset(self, blog, migrator):
        migrator.run()
        result = migrator.reset()
        assert result.names == [POSTS, USERS]
        assert migrator.pending() == [USERS, POSTS]

    def test_refresh(self, db, blog, migrator):
        migrator.run()
        db.execute("INSERT INTO users (name) VALUES (?)", ["Ada"])

        reset, run = migrator.refresh()

        assert reset.names == [POSTS, USERS]
        assert run.names == [USERS, POSTS]
        assert run.batch == 1
        assert db.query("SELECT * FROM users") == []


class TestStatus:
    def test_status_reports_applied_and_pending(self, blog, migrator):
        migrator.run([USERS])

        statuses = {s.name: s for s in migrator.status()}

        assert statuses[USERS].applied is True
        assert statuses[USERS].batch == 1
        assert statuses[POSTS].applied is False
        assert statuses[POSTS].to_dict()["applied_at"] is None

    def test_status_lists_orphaned_records(self, db, blog, migrator):
        migrator.run()
        db.execute(
            f"INSERT INTO {MIGRATIONS_TABLE} (name, batch) VALUES (?, ?)",
            ["20990101000000_ghost", 2],
        )
        ghost = next(s for s in migrator.status() if s.name == "20990101000000_ghost")
        assert ghost.applied is True
        assert ghost.registered is False

    def test_uses_default_registry(self, db):
        default_registry.register(USERS, up=_create("users"), down=_drop("users"))
        assert Migrator(db).pending() == [USERS]
