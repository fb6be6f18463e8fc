"""
tests/conftest.py
Shared fixtures for the sqlgen test suite.

SQLite tests run against a real in-memory database through SQLAlchemy.
MySQL and PostgreSQL parsers are exercised with a scripted connection that
answers catalog queries with canned rows.  File output goes to pytest's
tmp_path directories.
"""

from __future__ import annotations

import pathlib
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import pytest
import yaml
from sqlalchemy import create_engine, text

from sqlgen.config import Config
from sqlgen.models import Column, DatabaseType, ForeignKey, Index, Schema, Table
from sqlgen.typemap import map_type


# ---------------------------------------------------------------------------
# Example database
# ---------------------------------------------------------------------------

USERS_POSTS_DDL: List[str] = [
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        created_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER REFERENCES users(id)
    )
    """,
]


@pytest.fixture()
def sqlite_conn() -> Iterator[Any]:
    """In-memory SQLite connection holding the users/posts example tables."""
    engine = create_engine("sqlite://")
    with engine.connect() as conn:
        for statement in USERS_POSTS_DDL:
            conn.execute(text(statement))
        conn.commit()
        yield conn
    engine.dispose()


# ---------------------------------------------------------------------------
# Canonical model builders
# ---------------------------------------------------------------------------


def build_column(
    name: str,
    data_type: str,
    nullable: bool = True,
    **kwargs: Any,
) -> Column:
    go_type, _ = map_type(data_type, nullable)
    return Column(name=name, data_type=data_type, go_type=go_type, nullable=nullable, **kwargs)


@pytest.fixture()
def make_column() -> Callable[..., Column]:
    """Column factory that fills ``go_type`` through the type mapper."""
    return build_column


@pytest.fixture()
def users_table() -> Table:
    return Table(
        name="users",
        comment="registered accounts",
        columns=[
            build_column("id", "INTEGER", nullable=False,
                         is_primary_key=True, is_auto_increment=True),
            build_column("username", "TEXT", nullable=False),
            build_column("password", "TEXT", nullable=False),
            build_column("avatar_url", "varchar(255)", length=255),
            build_column("created_at", "TIMESTAMP"),
        ],
        primary_key=["id"],
        indexes=[Index(name="uk_users_username", columns=["username"], is_unique=True)],
    )


@pytest.fixture()
def posts_table() -> Table:
    return Table(
        name="posts",
        columns=[
            build_column("id", "INTEGER", nullable=False,
                         is_primary_key=True, is_auto_increment=True),
            build_column("user_id", "INTEGER"),
            build_column("title", "varchar(200)", nullable=False, length=200),
        ],
        primary_key=["id"],
        foreign_keys=[
            ForeignKey(name="fk_posts_user_id", column="user_id",
                       ref_table="users", ref_column="id", on_delete="CASCADE"),
        ],
    )


@pytest.fixture()
def users_posts_schema(users_table: Table, posts_table: Table) -> Schema:
    """Posts declared first so dependency ordering has work to do."""
    return Schema(
        name="main",
        database_type=DatabaseType.SQLITE,
        tables=[posts_table, users_table],
    )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config(tmp_path: pathlib.Path) -> Config:
    return Config(database_type="sqlite", output_dir=str(tmp_path / "out"))


@pytest.fixture()
def config_dict(tmp_path: pathlib.Path) -> Dict[str, Any]:
    return {
        "database_type": "postgres",
        "dsn": "postgresql://localhost/shop",
        "output_dir": str(tmp_path / "generated"),
        "package_name": "shop",
        "targets": ["model", "dao", "migration"],
        "table_filter": {"include": ["user*"], "exclude": ["*_log"]},
        "soft_delete": {"enabled": True, "field": "deleted_at"},
        "version": {"enabled": True},
        "tags": {"json": True, "gorm": False, "validate": True},
    }


@pytest.fixture()
def config_yaml_path(config_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the config dict to a temporary YAML file and return its path."""
    path = tmp_path / "sqlgen.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(config_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


# ---------------------------------------------------------------------------
# Scripted catalog connection
# ---------------------------------------------------------------------------

Rows = Union[Sequence[Dict[str, Any]], Callable[[Dict[str, Any]], Sequence[Dict[str, Any]]], Exception]


class FakeResult:
    def __init__(self, rows: Sequence[Dict[str, Any]]) -> None:
        self._rows: List[Dict[str, Any]] = list(rows)

    def mappings(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    def scalar(self) -> Any:
        if not self._rows:
            return None
        return next(iter(self._rows[0].values()))


class FakeConnection:
    """
    Answers ``execute(text(sql), params)`` from a script of
    ``(substring, rows)`` pairs; the first substring found in the SQL wins.
    ``rows`` may be a list, a callable taking the bound params, or an
    exception instance to raise.
    """

    def __init__(self, script: Sequence[Tuple[str, Rows]]) -> None:
        self.script: List[Tuple[str, Rows]] = list(script)
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def execute(self, statement: Any, params: Optional[Dict[str, Any]] = None) -> FakeResult:
        sql: str = str(statement)
        bound: Dict[str, Any] = dict(params or {})
        self.calls.append((sql, bound))
        for needle, rows in self.script:
            if needle in sql:
                if isinstance(rows, Exception):
                    raise rows
                if callable(rows):
                    rows = rows(bound)
                return FakeResult(rows)
        raise AssertionError(f"unexpected catalog query: {sql}")


@pytest.fixture()
def fake_connection() -> Callable[[Sequence[Tuple[str, Rows]]], FakeConnection]:
    return FakeConnection
