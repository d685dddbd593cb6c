"""Tests for ``plinth.core.schema`` — blueprint rendering and DDL execution."""

from __future__ import annotations

import pytest

from plinth.core.dialect import PostgreSQLDialect, SQLiteDialect
from plinth.core.errors import ExecutionError
from plinth.core.schema import Blueprint, Column, Schema, SchemaGrammar, render_default


def users_table(t):
    t.id()
    t.string("email").unique()
    t.timestamps()


class TestColumnModifiers:
    def test_modifiers_chain_on_same_column(self):
        bp = Blueprint("products")
        col = bp.integer("stock").unsigned().default(0).comment("units").index()
        assert col is bp.columns[0]
        assert (col.is_unsigned, col.default_value, col.comment_text, col.is_indexed) == (
            True,
            0,
            "units",
            True,
        )

    def test_render_default(self):
        assert render_default(True) == "TRUE"
        assert render_default(False) == "FALSE"
        assert render_default("it's") == "'it''s'"
        assert render_default(1.5) == "1.5"

    def test_column_definition_order(self):
        grammar = SchemaGrammar(Schema().dialect)
        col = Column("price", "DECIMAL(8,2)").unsigned().nullable().default(0).unique().comment("EUR")
        assert grammar.column_definition(col) == (
            "`price` DECIMAL(8,2) UNSIGNED NULL DEFAULT 0 UNIQUE COMMENT 'EUR'"
        )


class TestMySQLRendering:
    def test_create_users(self):
        assert Schema().create_sql("users", users_table) == (
            "CREATE TABLE `users` (`id` BIGINT NOT NULL AUTO_INCREMENT, "
            "`email` VARCHAR(255) NOT NULL UNIQUE, "
            "`created_at` TIMESTAMP NULL, `updated_at` TIMESTAMP NULL, "
            "PRIMARY KEY (`id`)) "
            "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"
        )

    def test_create_with_indexes_and_options(self):
        def build(t):
            t.id()
            t.string("sku", 64)
            t.integer("warehouse_id").index()
            t.boolean("active").default(True)
            t.soft_deletes()
            t.unique("sku", "warehouse_id")
            t.engine("MyISAM")
            t.temporary()

        assert Schema().create_sql("stock", build) == (
            "CREATE TEMPORARY TABLE `stock` (`id` BIGINT NOT NULL AUTO_INCREMENT, "
            "`sku` VARCHAR(64) NOT NULL, `warehouse_id` INTEGER NOT NULL, "
            "`active` BOOLEAN NOT NULL DEFAULT TRUE, `deleted_at` TIMESTAMP NULL, "
            "PRIMARY KEY (`id`), "
            "UNIQUE INDEX `unq_stock_sku_warehouse_id` (`sku`, `warehouse_id`), "
            "INDEX `idx_stock_warehouse_id` (`warehouse_id`)) "
            "ENGINE=MyISAM DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"
        )

    def test_alter_adds_columns_with_position(self):
        def build(t):
            t.string("phone", 20).nullable().after("email")
            t.integer("rank").first()
            t.index("phone")

        assert Schema().table_sql("users", build) == (
            "ALTER TABLE `users` ADD COLUMN `phone` VARCHAR(20) NULL AFTER `email`, "
            "ADD COLUMN `rank` INTEGER NOT NULL FIRST, "
            "ADD INDEX `idx_users_phone` (`phone`)"
        )

    def test_alter_with_nothing_renders_empty(self):
        assert Schema().table_sql("users", lambda t: None) == ""

    def test_drop_and_rename(self):
        schema = Schema()
        assert schema.drop_sql("users") == "DROP TABLE IF EXISTS `users`"
        assert schema.drop_if_exists_sql("users") == "DROP TABLE IF EXISTS `users`"
        assert schema.rename_sql("users", "members") == "ALTER TABLE `users` RENAME TO `members`"

    def test_column_primary_flag(self):
        def build(t):
            t.string("code", 8).primary()
            t.string("label")

        sql = Schema().create_sql("currencies", build)
        assert "PRIMARY KEY (`code`)" in sql


class TestPostgreSQLRendering:
    def test_create_drops_mysql_only_features(self):
        def build(t):
            t.id()
            t.integer("stock").unsigned().comment("units").index()
            t.unique("stock")

        assert Schema(dialect=PostgreSQLDialect()).create_sql("products", build) == (
            'CREATE TABLE "products" ("id" BIGSERIAL NOT NULL, "stock" INTEGER NOT NULL, '
            'PRIMARY KEY ("id"), CONSTRAINT "unq_products_stock" UNIQUE ("stock"));\n'
            'CREATE INDEX "idx_products_stock" ON "products" ("stock")'
        )

    def test_alter_is_one_statement_per_column(self):
        def build(t):
            t.string("phone", 20).nullable().after("email")
            t.text("bio").nullable()

        assert Schema(dialect=PostgreSQLDialect()).table_sql("users", build) == (
            'ALTER TABLE "users" ADD COLUMN "phone" VARCHAR(20) NULL;\n'
            'ALTER TABLE "users" ADD COLUMN "bio" TEXT NULL'
        )


class TestSchemaExecution:
    def test_dialect_follows_adapter(self, db):
        assert isinstance(Schema(db).dialect, SQLiteDialect)

    def test_create_has_table_drop(self, db):
        schema = Schema(db)
        assert schema.has_table("users") is False

        schema.create("users", users_table)
        assert schema.has_table("users") is True

        schema.drop("users")
        assert schema.has_table("users") is False

    def test_create_with_separate_index_statement(self, db):
        def build(t):
            t.id()
            t.string("email").index()

        Schema(db).create("subscribers", build)
        indexes = db.query("SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = ?", ["subscribers"])
        assert {"name": "idx_subscribers_email"} in indexes

    def test_alter_and_rename(self, db):
        schema = Schema(db)
        schema.create("users", users_table)
        schema.table("users", lambda t: t.string("name").nullable())
        db.execute("INSERT INTO users (email, name) VALUES (?, ?)", ["a@b.c", "Ada"])

        schema.rename("users", "members")

        assert schema.has_table("members") is True
        assert db.query_one("SELECT name FROM members") == {"name": "Ada"}

    def test_drop_missing_table_is_noop(self, db):
        Schema(db).drop_if_exists("nothing_here")

    def test_failed_ddl_annotated(self, db):
        schema = Schema(db)
        schema.create("users", users_table)
        with pytest.raises(ExecutionError) as exc_info:
            schema.create("users", users_table)
        assert exc_info.value.context.operation == "create"
        assert exc_info.value.context.table == "users"

    def test_unbound_schema(self):
        with pytest.raises(ExecutionError, match="no database adapter"):
            Schema().create("users", users_table)
