"""
tests/test_parsers.py
Unit tests for sqlgen.parsers.

Tests cover:
- SQLite introspection against a real in-memory database
- MySQL and PostgreSQL catalog decoding from scripted rows
- Per-table failure recovery and fatal enumeration errors
- Cancellation before catalog queries
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from sqlgen.errors import ParseCancelledError, ParseError
from sqlgen.models import DatabaseType
from sqlgen.parsers import (
    MySQLParser,
    PostgresParser,
    SQLiteParser,
    new_parser,
)


def _driver_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection lost"))


# ===========================================================================
# Factory
# ===========================================================================


class TestNewParser:
    @pytest.mark.parametrize(
        "database_type, expected",
        [
            (DatabaseType.MYSQL, MySQLParser),
            (DatabaseType.POSTGRES, PostgresParser),
            (DatabaseType.SQLITE, SQLiteParser),
            ("sqlite", SQLiteParser),
        ],
    )
    def test_selects_dialect(self, database_type: Any, expected: type) -> None:
        parser = new_parser(database_type)
        assert isinstance(parser, expected)
        assert parser.get_dialect() is DatabaseType(database_type)

    def test_unknown_dialect_rejected(self) -> None:
        with pytest.raises(ValueError):
            new_parser("oracle")

    def test_options_forwarded(self) -> None:
        parser = new_parser(DatabaseType.POSTGRES, schema="billing")
        assert parser.schema == "billing"


# ===========================================================================
# SQLite
# ===========================================================================


class TestSQLiteParser:
    def test_example_schema(self, sqlite_conn: Any) -> None:
        schema = SQLiteParser().parse_database(sqlite_conn)
        assert schema.database_type is DatabaseType.SQLITE
        assert schema.name == "main"
        assert schema.table_names == ["posts", "users"]
        assert schema.failures == []

        users = schema.table("users")
        assert users is not None
        assert users.primary_key == ["id"]

        posts = schema.table("posts")
        assert posts is not None
        assert len(posts.foreign_keys) == 1
        fk = posts.foreign_keys[0]
        assert (fk.column, fk.ref_table, fk.ref_column) == ("user_id", "users", "id")
        assert fk.name == "fk_posts_user_id"

    def test_internal_tables_skipped(self, sqlite_conn: Any) -> None:
        # AUTOINCREMENT creates sqlite_sequence.
        schema = SQLiteParser().parse_database(sqlite_conn)
        assert not any(name.startswith("sqlite_") for name in schema.table_names)

    def test_column_details(self, sqlite_conn: Any) -> None:
        users = SQLiteParser().parse_table(sqlite_conn, "users")
        id_col = users.column("id")
        assert id_col.is_primary_key
        assert id_col.is_auto_increment
        assert not id_col.nullable
        assert id_col.go_type == "int"

        username = users.column("username")
        assert not username.nullable
        assert username.go_type == "string"

        created = users.column("created_at")
        assert created.nullable
        assert created.go_type == "*time.Time"

    def test_unique_autoindex(self, sqlite_conn: Any) -> None:
        users = SQLiteParser().parse_table(sqlite_conn, "users")
        unique = [i for i in users.indexes if i.is_unique]
        assert len(unique) == 1
        assert unique[0].columns == ["username"]
        assert not unique[0].is_primary

    def test_composite_primary_key(self, sqlite_conn: Any) -> None:
        sqlite_conn.execute(text(
            "CREATE TABLE memberships (group_id INTEGER, user_id INTEGER, "
            "role TEXT DEFAULT 'member', PRIMARY KEY (group_id, user_id))"
        ))
        table = SQLiteParser().parse_table(sqlite_conn, "memberships")
        assert table.primary_key == ["group_id", "user_id"]
        assert not any(c.is_auto_increment for c in table.columns)
        assert table.column("role").default == "'member'"

    def test_foreign_key_without_column_targets_parent_key(self, sqlite_conn: Any) -> None:
        sqlite_conn.execute(text(
            "CREATE TABLE comments (id INTEGER PRIMARY KEY, post_id INTEGER REFERENCES posts)"
        ))
        table = SQLiteParser().parse_table(sqlite_conn, "comments")
        assert table.foreign_keys[0].ref_column == "id"

    def test_missing_table_raises(self, sqlite_conn: Any) -> None:
        with pytest.raises(ParseError) as exc_info:
            SQLiteParser().parse_table(sqlite_conn, "ghosts")
        assert exc_info.value.table == "ghosts"

    def test_cancelled_token(self, sqlite_conn: Any) -> None:
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ParseCancelledError):
            SQLiteParser().parse_database(sqlite_conn, cancel=cancel)


# ===========================================================================
# MySQL
# ===========================================================================


def _mysql_columns(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    def col(name: str, column_type: str, nullable: str = "YES", key: str = "",
            extra: str = "", default: Any = None, comment: str = "",
            length: Any = None, precision: Any = None, scale: Any = None) -> Dict[str, Any]:
        return {
            "column_name": name, "column_type": column_type, "is_nullable": nullable,
            "column_default": default, "column_comment": comment, "column_key": key,
            "extra": extra, "char_length": length, "numeric_precision": precision,
            "numeric_scale": scale,
        }

    if params["table"] == "users":
        return [
            col("id", "bigint(20) unsigned", "NO", "PRI", "auto_increment", precision=20),
            col("username", "varchar(50)", "NO", "UNI", length=50, comment="login name"),
            col("is_active", "tinyint(1)", "NO", default="1"),
            col("balance", "decimal(10,2)", precision=10, scale=2),
            col("created_at", "datetime", default="CURRENT_TIMESTAMP"),
        ]
    if params["table"] == "posts":
        return [
            col("id", "int(11)", "NO", "PRI", "auto_increment"),
            col("user_id", "bigint(20) unsigned", "YES", "MUL"),
        ]
    return []


def _mysql_indexes(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    if params["table"] == "users":
        return [
            {"index_name": "PRIMARY", "column_name": "id", "non_unique": 0},
            {"index_name": "uk_username", "column_name": "username", "non_unique": 0},
        ]
    return [
        {"index_name": "PRIMARY", "column_name": "id", "non_unique": 0},
        {"index_name": "fk_posts_user", "column_name": "user_id", "non_unique": 1},
    ]


def _mysql_foreign_keys(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    if params["table"] != "posts":
        return []
    return [{
        "constraint_name": "fk_posts_user", "column_name": "user_id",
        "ref_table": "users", "ref_column": "id",
        "delete_rule": "CASCADE", "update_rule": "RESTRICT",
    }]


@pytest.fixture()
def mysql_script() -> List[Any]:
    return [
        ("DATABASE()", [{"DATABASE()": "shop"}]),
        ("TABLE_TYPE = 'BASE TABLE'", [
            {"table_name": "posts", "table_comment": ""},
            {"table_name": "users", "table_comment": "accounts"},
        ]),
        ("information_schema.TABLES", lambda p: [
            {"table_comment": "accounts" if p["table"] == "users" else ""}
        ]),
        ("information_schema.COLUMNS", _mysql_columns),
        ("information_schema.STATISTICS", _mysql_indexes),
        ("KEY_COLUMN_USAGE", _mysql_foreign_keys),
    ]


class TestMySQLParser:
    def test_parse_database(self, fake_connection: Any, mysql_script: List[Any]) -> None:
        schema = MySQLParser().parse_database(fake_connection(mysql_script))
        assert schema.name == "shop"
        assert schema.database_type is DatabaseType.MYSQL
        assert schema.table_names == ["posts", "users"]
        assert schema.table("users").comment == "accounts"
        assert schema.table("users").primary_key == ["id"]
        posts_fks = schema.table("posts").foreign_keys
        assert len(posts_fks) == 1
        assert (posts_fks[0].column, posts_fks[0].ref_table, posts_fks[0].ref_column) == (
            "user_id", "users", "id"
        )

    def test_current_database_queried_once(
        self, fake_connection: Any, mysql_script: List[Any]
    ) -> None:
        conn = fake_connection(mysql_script)
        MySQLParser().parse_database(conn)
        assert sum("DATABASE()" in sql for sql, _ in conn.calls) == 1

    def test_column_decoding(self, fake_connection: Any, mysql_script: List[Any]) -> None:
        users = MySQLParser().parse_table(fake_connection(mysql_script), "users")
        id_col = users.column("id")
        assert id_col.is_primary_key and id_col.is_auto_increment
        assert id_col.go_type == "uint64"

        username = users.column("username")
        assert username.length == 50
        assert username.comment == "login name"

        assert users.column("is_active").go_type == "bool"
        assert users.column("is_active").default == "1"
        balance = users.column("balance")
        assert (balance.precision, balance.scale) == (10, 2)
        assert balance.go_type == "*string"
        assert users.column("created_at").go_type == "*time.Time"

    def test_indexes(self, fake_connection: Any, mysql_script: List[Any]) -> None:
        users = MySQLParser().parse_table(fake_connection(mysql_script), "users")
        by_name = {i.name: i for i in users.indexes}
        assert by_name["PRIMARY"].is_primary
        assert by_name["uk_username"].is_unique
        assert users.primary_key == ["id"]

    def test_foreign_keys(self, fake_connection: Any, mysql_script: List[Any]) -> None:
        posts = MySQLParser().parse_table(fake_connection(mysql_script), "posts")
        fk = posts.foreign_keys[0]
        assert (fk.ref_table, fk.ref_column) == ("users", "id")
        assert (fk.on_delete, fk.on_update) == ("CASCADE", "RESTRICT")

    def test_schema_bound_to_queries(self, fake_connection: Any, mysql_script: List[Any]) -> None:
        conn = fake_connection(mysql_script)
        MySQLParser(database="analytics").parse_database(conn)
        assert not any("DATABASE()" in sql for sql, _ in conn.calls)
        assert all(params.get("schema") == "analytics" for _, params in conn.calls)

    def test_per_table_failure_recovered(self, fake_connection: Any, mysql_script: List[Any]) -> None:
        def flaky(params: Dict[str, Any]) -> List[Dict[str, Any]]:
            if params["table"] == "posts":
                raise _driver_error()
            return _mysql_columns(params)

        script = [(n, flaky if n == "information_schema.COLUMNS" else r) for n, r in mysql_script]
        schema = MySQLParser().parse_database(fake_connection(script))
        assert schema.table_names == ["users"]
        assert len(schema.failures) == 1
        assert schema.failures[0].table == "posts"
        assert "catalog query failed" in schema.failures[0].message

    def test_enumeration_failure_is_fatal(self, fake_connection: Any, mysql_script: List[Any]) -> None:
        script = [("TABLE_TYPE = 'BASE TABLE'", _driver_error())] + mysql_script
        with pytest.raises(ParseError) as exc_info:
            MySQLParser().parse_database(fake_connection(script))
        assert isinstance(exc_info.value.cause, OperationalError)
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_cancel_mid_scan_not_recovered(self, fake_connection: Any, mysql_script: List[Any]) -> None:
        cancel = threading.Event()

        def cancel_on_posts(params: Dict[str, Any]) -> List[Dict[str, Any]]:
            if params["table"] == "posts":
                cancel.set()
            return _mysql_columns(params)

        script = [
            (n, cancel_on_posts if n == "information_schema.COLUMNS" else r)
            for n, r in mysql_script
        ]
        with pytest.raises(ParseCancelledError):
            MySQLParser().parse_database(fake_connection(script), cancel=cancel)


# ===========================================================================
# PostgreSQL
# ===========================================================================


def _pg_columns(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    def col(name: str, data_type: str, nullable: bool = True, default: Any = None,
            pk: bool = False, identity: str = "", comment: Any = None) -> Dict[str, Any]:
        return {
            "column_name": name, "data_type": data_type, "is_nullable": nullable,
            "column_default": default, "column_comment": comment,
            "is_primary_key": pk, "identity": identity,
        }

    if params["table"] == "users":
        return [
            col("id", "integer", False, "nextval('users_id_seq'::regclass)", pk=True),
            col("username", "character varying(50)", False, comment="login name"),
            col("score", "numeric(8,3)"),
            col("created_at", "timestamp without time zone", default="now()"),
        ]
    return [
        col("id", "bigint", False, pk=True, identity="d"),
        col("user_id", "integer"),
        col("payload", "jsonb"),
    ]


@pytest.fixture()
def pg_script() -> List[Any]:
    return [
        ("current_database", [{"current_database": "shop"}]),
        ("relkind IN", [
            {"table_name": "posts", "table_comment": None},
            {"table_name": "users", "table_comment": "accounts"},
        ]),
        ("obj_description", lambda p: [
            {"table_comment": "accounts" if p["table"] == "users" else None}
        ]),
        ("format_type", _pg_columns),
        ("pg_index", lambda p: [
            {"index_name": f"{p['table']}_pkey", "column_name": "id",
             "is_unique": True, "is_primary": True},
        ]),
        ("contype = 'f'", lambda p: [] if p["table"] == "users" else [
            {"constraint_name": "posts_user_id_fkey", "column_name": "user_id",
             "ref_table": "users", "ref_column": "id",
             "delete_code": "c", "update_code": "a"},
        ]),
    ]


class TestPostgresParser:
    def test_parse_database(self, fake_connection: Any, pg_script: List[Any]) -> None:
        schema = PostgresParser().parse_database(fake_connection(pg_script))
        assert schema.name == "shop"
        assert schema.table_names == ["posts", "users"]
        assert schema.table("posts").comment == ""
        assert schema.table("users").primary_key == ["id"]
        posts_fks = schema.table("posts").foreign_keys
        assert len(posts_fks) == 1
        assert (posts_fks[0].column, posts_fks[0].ref_table, posts_fks[0].ref_column) == (
            "user_id", "users", "id"
        )

    def test_sequence_and_identity_auto_increment(
        self, fake_connection: Any, pg_script: List[Any]
    ) -> None:
        schema = PostgresParser().parse_database(fake_connection(pg_script))
        assert schema.table("users").column("id").is_auto_increment
        assert schema.table("posts").column("id").is_auto_increment
        assert not schema.table("posts").column("user_id").is_auto_increment

    def test_type_modifiers(self, fake_connection: Any, pg_script: List[Any]) -> None:
        users = PostgresParser().parse_table(fake_connection(pg_script), "users")
        assert users.column("username").length == 50
        assert users.column("username").go_type == "string"
        score = users.column("score")
        assert (score.precision, score.scale) == (8, 3)
        assert users.column("created_at").go_type == "*time.Time"

    def test_json_column_not_pointer(self, fake_connection: Any, pg_script: List[Any]) -> None:
        posts = PostgresParser().parse_table(fake_connection(pg_script), "posts")
        assert posts.column("payload").go_type == "json.RawMessage"

    def test_foreign_key_actions_decoded(self, fake_connection: Any, pg_script: List[Any]) -> None:
        posts = PostgresParser().parse_table(fake_connection(pg_script), "posts")
        fk = posts.foreign_keys[0]
        assert fk.on_delete == "CASCADE"
        assert fk.on_update == "NO ACTION"

    def test_schema_parameter(self, fake_connection: Any, pg_script: List[Any]) -> None:
        conn = fake_connection(pg_script)
        PostgresParser(schema="billing").parse_table(conn, "users")
        assert all(params.get("schema") == "billing" for _, params in conn.calls)
