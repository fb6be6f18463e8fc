"""
tests/test_models.py
Unit tests for sqlgen.models and sqlgen.errors.
"""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from sqlgen.errors import ConfigError, GenerateError, ParseCancelledError, ParseError
from sqlgen.models import DatabaseType, ForeignKey, Schema, Table, Target


def _table(make_column: Any, name: str, *refs: str) -> Table:
    return Table(
        name=name,
        columns=[make_column("id", "int", nullable=False, is_primary_key=True),
                 *[make_column(f"{ref}_id", "int") for ref in refs]],
        primary_key=["id"],
        foreign_keys=[
            ForeignKey(column=f"{ref}_id", ref_table=ref, ref_column="id") for ref in refs
        ],
    )


# ===========================================================================
# Schema entities
# ===========================================================================


class TestTable:
    def test_requires_columns(self) -> None:
        with pytest.raises(ValidationError):
            Table(name="empty", columns=[])

    def test_primary_key_must_reference_columns(self, make_column: Any) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Table(name="t", columns=[make_column("id", "int")], primary_key=["uuid"])
        assert "uuid" in str(exc_info.value)

    def test_lookup_helpers(self, users_table: Table) -> None:
        assert users_table.column("username") is not None
        assert users_table.column("nope") is None
        assert [c.name for c in users_table.primary_columns] == ["id"]

    def test_frozen(self, users_table: Table) -> None:
        with pytest.raises(ValidationError):
            users_table.name = "other"  # type: ignore[misc]


class TestSchema:
    def test_table_lookup(self, users_posts_schema: Schema) -> None:
        assert users_posts_schema.table_names == ["posts", "users"]
        assert users_posts_schema.table("users") is not None
        assert users_posts_schema.table("ghosts") is None

    def test_topological_order(self, make_column: Any) -> None:
        schema = Schema(
            database_type=DatabaseType.MYSQL,
            tables=[
                _table(make_column, "order_items", "orders", "products"),
                _table(make_column, "orders", "customers"),
                _table(make_column, "products"),
                _table(make_column, "customers"),
            ],
        )
        order = schema.topological_order()
        assert order.index("customers") < order.index("orders")
        assert order.index("orders") < order.index("order_items")
        assert order.index("products") < order.index("order_items")

    def test_self_and_external_references_ignored(self, make_column: Any) -> None:
        schema = Schema(
            database_type=DatabaseType.SQLITE,
            tables=[_table(make_column, "nodes", "nodes"), _table(make_column, "tags", "remote")],
        )
        assert schema.topological_order() == ["nodes", "tags"]

    def test_cycle_keeps_declaration_order(self, make_column: Any) -> None:
        schema = Schema(
            database_type=DatabaseType.POSTGRES,
            tables=[
                _table(make_column, "a", "b"),
                _table(make_column, "b", "a"),
                _table(make_column, "c"),
            ],
        )
        assert schema.topological_order() == ["c", "a", "b"]

    def test_target_all(self) -> None:
        assert Target.ALL == Target.MODEL | Target.DAO | Target.QUERY | Target.MIGRATION


# ===========================================================================
# Errors
# ===========================================================================


class TestErrors:
    def test_parse_error_format(self) -> None:
        assert str(ParseError("boom")) == "parse error: boom"
        assert str(ParseError("boom", table="users")) == "parse error on table users: boom"
        assert str(ParseError("boom", table="users", column="id")) == (
            "parse error on table users column id: boom"
        )

    def test_cancelled_is_parse_error(self) -> None:
        assert issubclass(ParseCancelledError, ParseError)

    def test_generate_error_format(self) -> None:
        cause = OSError("disk full")
        error = GenerateError("write failed", table="users", file="models/users.go", cause=cause)
        assert str(error) == "generate error for table users file models/users.go: write failed"
        assert error.cause is cause

    def test_config_error_format(self) -> None:
        error = ConfigError("output_dir", "output directory is required")
        assert str(error) == "config error on field output_dir: output directory is required"
