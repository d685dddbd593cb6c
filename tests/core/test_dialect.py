"""Tests for ``plinth.core.dialect`` — placeholder translation and DDL capabilities."""

from __future__ import annotations

import pytest

from plinth.core.dialect import (
    Dialect,
    MySQLDialect,
    PostgreSQLDialect,
    SQLiteDialect,
    get_dialect,
    register_dialect,
)
from plinth.core.errors import ConfigError


class TestPlaceholders:
    def test_format_style_rewrites_question_marks(self):
        d = MySQLDialect()
        assert d.format_placeholders("SELECT * FROM t WHERE a = ? AND b = ?") == (
            "SELECT * FROM t WHERE a = %s AND b = %s"
        )

    def test_literal_percent_is_escaped(self):
        d = PostgreSQLDialect()
        assert d.format_placeholders("SELECT * FROM t WHERE a = ? AND b LIKE '50%'") == (
            "SELECT * FROM t WHERE a = %s AND b LIKE '50%%'"
        )

    def test_question_mark_inside_literal_is_kept(self):
        d = MySQLDialect()
        assert d.format_placeholders("SELECT '?', 'it''s ?' FROM t WHERE a = ?") == (
            "SELECT '?', 'it''s ?' FROM t WHERE a = %s"
        )

    def test_sqlite_leaves_statement_alone(self):
        sql = "SELECT * FROM t WHERE a = ? AND b LIKE '50%'"
        assert SQLiteDialect().format_placeholders(sql) == sql


class TestQuotingAndCapabilities:
    def test_quote(self):
        assert MySQLDialect().quote("users") == "`users`"
        assert PostgreSQLDialect().quote("users") == '"users"'
        assert SQLiteDialect().quote("users") == "`users`"

    def test_auto_increment(self):
        assert MySQLDialect().auto_increment("BIGINT") == ("BIGINT", "AUTO_INCREMENT")
        assert PostgreSQLDialect().auto_increment("BIGINT") == ("BIGSERIAL", "")
        assert PostgreSQLDialect().auto_increment("INTEGER") == ("SERIAL", "")
        assert SQLiteDialect().auto_increment("BIGINT") == ("INTEGER", "")

    def test_mysql_only_features(self):
        mysql, pg = MySQLDialect(), PostgreSQLDialect()
        assert mysql.supports_table_options and not pg.supports_table_options
        assert mysql.supports_unsigned and not pg.supports_unsigned
        assert pg.supports_returning and not mysql.supports_returning

    def test_protocol(self):
        assert isinstance(SQLiteDialect(), Dialect)


class TestRegistry:
    def test_get_dialect_alias(self):
        assert isinstance(get_dialect("postgres"), PostgreSQLDialect)
        assert isinstance(get_dialect("MySQL"), MySQLDialect)

    def test_unknown_driver(self):
        with pytest.raises(ConfigError, match="oracle") as exc_info:
            get_dialect("oracle")
        assert exc_info.value.context.driver == "oracle"

    def test_register_custom(self):
        register_dialect("mysql-test", MySQLDialect())
        assert isinstance(get_dialect("mysql-test"), MySQLDialect)
