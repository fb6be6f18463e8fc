# File: sqlgen/parsers.py
"""
sqlgen - Database Catalog Parsers
==================================
Introspect a live database through an open SQLAlchemy ``Connection`` and
build the canonical :class:`~sqlgen.models.Schema`.

Three implementations share one driver loop (``DialectParser``):

    MySQLParser     information_schema views, filtered by schema name
    PostgresParser  pg_catalog tables joined on relation kind
    SQLiteParser    PRAGMA introspection against a single database file

Failure policy:

* Listing the tables fails  -> fatal ``ParseError``.
* One table fails           -> logged, recorded in ``Schema.failures``, the
                               table is left out, the scan continues.
* The cancel token is set   -> ``ParseCancelledError``; never recovered.

The cancel token is an optional ``threading.Event`` checked before every
catalog query.  A caller wanting a timeout can arm it with
``threading.Timer(seconds, event.set)``.
"""

from __future__ import annotations

import abc
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sqlgen.errors import ParseCancelledError, ParseError
from sqlgen.models import (
    Column,
    DatabaseType,
    ForeignKey,
    Index,
    ParseFailure,
    Schema,
    Table,
)
from sqlgen.typemap import is_integer_type, map_type, parse_type_modifiers
from sqlgen.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.parsers")

Row = Mapping[str, Any]
CancelToken = Optional[threading.Event]


# ---------------------------------------------------------------------------
# Row value helpers
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _int(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().upper() in {"YES", "Y", "TRUE", "T", "1"}
    return bool(value)


def check_cancelled(cancel: CancelToken, table: str = "") -> None:
    if cancel is not None and cancel.is_set():
        raise ParseCancelledError("parse cancelled", table=table)


# ---------------------------------------------------------------------------
# Base parser
# ---------------------------------------------------------------------------


class DialectParser(abc.ABC):
    """Shared driver loop; subclasses provide the catalog queries."""

    dialect: DatabaseType

    def get_dialect(self) -> DatabaseType:
        return self.dialect

    # -- Public API ---------------------------------------------------------

    def parse_database(self, conn: Any, cancel: CancelToken = None) -> Schema:
        """
        Introspect every table visible to *conn*.

        Per-table failures are recovered and listed in ``Schema.failures``.
        """
        with Timer(f"parse {self.dialect.value}") as timer:
            database: str = self._database_name(conn, cancel)
            scope: str = self._scope(conn, cancel, database)
            names: List[str] = self._list_tables(conn, scope, cancel)
            logger.info(
                "Found %d tables in %s database '%s'.",
                len(names),
                self.dialect.value,
                database,
            )

            tables: List[Table] = []
            failures: List[ParseFailure] = []
            for name in names:
                try:
                    tables.append(self._parse_table(conn, name, scope, cancel))
                except ParseCancelledError:
                    raise
                except ParseError as exc:
                    logger.warning("Skipping table %s: %s", name, exc)
                    failures.append(ParseFailure(table=name, message=str(exc)))

        logger.info(
            "Parsed %d/%d tables from '%s' in %.3fs (%d failed).",
            len(tables),
            len(names),
            database,
            timer.elapsed,
            len(failures),
        )
        return Schema(
            name=database,
            database_type=self.dialect,
            tables=tables,
            parsed_at=datetime.now(timezone.utc),
            failures=failures,
        )

    def parse_table(self, conn: Any, name: str, cancel: CancelToken = None) -> Table:
        """Introspect a single table by name."""
        return self._parse_table(conn, name, self._scope(conn, cancel), cancel)

    # -- Driver -------------------------------------------------------------

    def _parse_table(
        self, conn: Any, name: str, scope: str, cancel: CancelToken
    ) -> Table:
        comment: str = self._table_comment(conn, name, scope, cancel)
        columns: List[Column] = self._columns(conn, name, scope, cancel)
        if not columns:
            raise ParseError("table not found or has no columns", table=name)
        indexes: List[Index] = self._indexes(conn, name, scope, cancel)
        foreign_keys: List[ForeignKey] = self._foreign_keys(conn, name, scope, cancel)

        try:
            table = Table(
                name=name,
                comment=comment,
                columns=columns,
                primary_key=self._primary_key(columns, indexes),
                indexes=indexes,
                foreign_keys=foreign_keys,
            )
        except ValidationError as exc:
            raise ParseError("invalid table definition", table=name, cause=exc) from exc
        logger.debug(
            "Parsed table %s: %d columns, %d indexes, %d foreign keys.",
            name,
            len(columns),
            len(indexes),
            len(foreign_keys),
        )
        return table

    @staticmethod
    def _primary_key(columns: Sequence[Column], indexes: Sequence[Index]) -> List[str]:
        for index in indexes:
            if index.is_primary and index.columns:
                return list(index.columns)
        return [c.name for c in columns if c.is_primary_key]

    @staticmethod
    def _make_column(
        name: str,
        data_type: str,
        nullable: bool,
        default: Optional[str] = None,
        comment: str = "",
        is_primary_key: bool = False,
        is_auto_increment: bool = False,
        length: int = 0,
        precision: int = 0,
        scale: int = 0,
    ) -> Column:
        nullable = nullable and not is_primary_key
        go_type, _ = map_type(data_type, nullable)
        return Column(
            name=name,
            data_type=data_type,
            go_type=go_type,
            nullable=nullable,
            default=default,
            comment=comment,
            is_primary_key=is_primary_key,
            is_auto_increment=is_auto_increment,
            length=max(length, 0),
            precision=max(precision, 0),
            scale=max(scale, 0),
        )

    @staticmethod
    def _group_indexes(rows: Sequence[Tuple[str, str, bool, bool]]) -> List[Index]:
        """Fold ``(index, column, unique, primary)`` rows into Index models."""
        grouped: Dict[str, Dict[str, Any]] = {}
        for index_name, column_name, unique, primary in rows:
            entry = grouped.setdefault(
                index_name,
                {"columns": [], "is_unique": unique, "is_primary": primary},
            )
            entry["columns"].append(column_name)
        return [
            Index(name=name, columns=entry["columns"],
                  is_unique=entry["is_unique"], is_primary=entry["is_primary"])
            for name, entry in grouped.items()
        ]

    # -- Query helpers ------------------------------------------------------

    def _fetch(
        self,
        conn: Any,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        cancel: CancelToken = None,
        table: str = "",
    ) -> List[Row]:
        check_cancelled(cancel, table)
        try:
            return list(conn.execute(text(sql), params or {}).mappings())
        except SQLAlchemyError as exc:
            if cancel is not None and cancel.is_set():
                raise ParseCancelledError("parse cancelled", table=table, cause=exc) from exc
            raise ParseError("catalog query failed", table=table, cause=exc) from exc

    def _scalar(
        self,
        conn: Any,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        cancel: CancelToken = None,
        table: str = "",
    ) -> Any:
        check_cancelled(cancel, table)
        try:
            return conn.execute(text(sql), params or {}).scalar()
        except SQLAlchemyError as exc:
            if cancel is not None and cancel.is_set():
                raise ParseCancelledError("parse cancelled", table=table, cause=exc) from exc
            raise ParseError("catalog query failed", table=table, cause=exc) from exc

    # -- Dialect hooks ------------------------------------------------------

    @abc.abstractmethod
    def _database_name(self, conn: Any, cancel: CancelToken) -> str: ...

    @abc.abstractmethod
    def _scope(
        self, conn: Any, cancel: CancelToken, database: Optional[str] = None
    ) -> str:
        """Catalog scope for table queries; *database* is the already resolved name."""

    @abc.abstractmethod
    def _list_tables(self, conn: Any, scope: str, cancel: CancelToken) -> List[str]: ...

    @abc.abstractmethod
    def _table_comment(
        self, conn: Any, table: str, scope: str, cancel: CancelToken
    ) -> str: ...

    @abc.abstractmethod
    def _columns(
        self, conn: Any, table: str, scope: str, cancel: CancelToken
    ) -> List[Column]: ...

    @abc.abstractmethod
    def _indexes(
        self, conn: Any, table: str, scope: str, cancel: CancelToken
    ) -> List[Index]: ...

    @abc.abstractmethod
    def _foreign_keys(
        self, conn: Any, table: str, scope: str, cancel: CancelToken
    ) -> List[ForeignKey]: ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.dialect.value}>"


# ---------------------------------------------------------------------------
# MySQL: information_schema
# ---------------------------------------------------------------------------

_MYSQL_TABLES = """
SELECT TABLE_NAME AS table_name, TABLE_COMMENT AS table_comment
FROM information_schema.TABLES
WHERE TABLE_SCHEMA = :schema AND TABLE_TYPE = 'BASE TABLE'
ORDER BY TABLE_NAME
"""

_MYSQL_TABLE_COMMENT = """
SELECT TABLE_COMMENT AS table_comment
FROM information_schema.TABLES
WHERE TABLE_SCHEMA = :schema AND TABLE_NAME = :table
"""

_MYSQL_COLUMNS = """
SELECT COLUMN_NAME AS column_name,
       COLUMN_TYPE AS column_type,
       IS_NULLABLE AS is_nullable,
       COLUMN_DEFAULT AS column_default,
       COLUMN_COMMENT AS column_comment,
       COLUMN_KEY AS column_key,
       EXTRA AS extra,
       CHARACTER_MAXIMUM_LENGTH AS char_length,
       NUMERIC_PRECISION AS numeric_precision,
       NUMERIC_SCALE AS numeric_scale
FROM information_schema.COLUMNS
WHERE TABLE_SCHEMA = :schema AND TABLE_NAME = :table
ORDER BY ORDINAL_POSITION
"""

_MYSQL_INDEXES = """
SELECT INDEX_NAME AS index_name, COLUMN_NAME AS column_name, NON_UNIQUE AS non_unique
FROM information_schema.STATISTICS
WHERE TABLE_SCHEMA = :schema AND TABLE_NAME = :table
ORDER BY INDEX_NAME, SEQ_IN_INDEX
"""

_MYSQL_FOREIGN_KEYS = """
SELECT k.CONSTRAINT_NAME AS constraint_name,
       k.COLUMN_NAME AS column_name,
       k.REFERENCED_TABLE_NAME AS ref_table,
       k.REFERENCED_COLUMN_NAME AS ref_column,
       r.DELETE_RULE AS delete_rule,
       r.UPDATE_RULE AS update_rule
FROM information_schema.KEY_COLUMN_USAGE k
JOIN information_schema.REFERENTIAL_CONSTRAINTS r
  ON r.CONSTRAINT_SCHEMA = k.CONSTRAINT_SCHEMA
 AND r.CONSTRAINT_NAME = k.CONSTRAINT_NAME
WHERE k.TABLE_SCHEMA = :schema AND k.TABLE_NAME = :table
  AND k.REFERENCED_TABLE_NAME IS NOT NULL
ORDER BY k.CONSTRAINT_NAME, k.ORDINAL_POSITION
"""


class MySQLParser(DialectParser):
    """
    MySQL / MariaDB.

    *database* pins the schema to inspect; by default the connection's
    current database (``SELECT DATABASE()``) is used.
    """

    dialect = DatabaseType.MYSQL

    def __init__(self, database: Optional[str] = None) -> None:
        self.database: Optional[str] = database

    def _database_name(self, conn: Any, cancel: CancelToken) -> str:
        if self.database:
            return self.database
        name: str = _text(self._scalar(conn, "SELECT DATABASE()", cancel=cancel))
        if not name:
            raise ParseError("no database selected on the connection")
        return name

    def _scope(
        self, conn: Any, cancel: CancelToken, database: Optional[str] = None
    ) -> str:
        return database or self._database_name(conn, cancel)

    def _list_tables(self, conn: Any, scope: str, cancel: CancelToken) -> List[str]:
        rows = self._fetch(conn, _MYSQL_TABLES, {"schema": scope}, cancel=cancel)
        return [_text(row["table_name"]) for row in rows]

    def _table_comment(self, conn: Any, table: str, scope: str, cancel: CancelToken) -> str:
        rows = self._fetch(
            conn, _MYSQL_TABLE_COMMENT, {"schema": scope, "table": table},
            cancel=cancel, table=table,
        )
        return _text(rows[0]["table_comment"]) if rows else ""

    def _columns(self, conn: Any, table: str, scope: str, cancel: CancelToken) -> List[Column]:
        rows = self._fetch(
            conn, _MYSQL_COLUMNS, {"schema": scope, "table": table},
            cancel=cancel, table=table,
        )
        columns: List[Column] = []
        for row in rows:
            default: Any = row["column_default"]
            columns.append(self._make_column(
                name=_text(row["column_name"]),
                data_type=_text(row["column_type"]),
                nullable=_truthy(row["is_nullable"]),
                default=None if default is None else _text(default),
                comment=_text(row["column_comment"]),
                is_primary_key=_text(row["column_key"]).upper() == "PRI",
                is_auto_increment="auto_increment" in _text(row["extra"]).lower(),
                length=_int(row["char_length"]),
                precision=_int(row["numeric_precision"]),
                scale=_int(row["numeric_scale"]),
            ))
        return columns

    def _indexes(self, conn: Any, table: str, scope: str, cancel: CancelToken) -> List[Index]:
        rows = self._fetch(
            conn, _MYSQL_INDEXES, {"schema": scope, "table": table},
            cancel=cancel, table=table,
        )
        return self._group_indexes([
            (
                _text(row["index_name"]),
                _text(row["column_name"]),
                _int(row["non_unique"]) == 0,
                _text(row["index_name"]) == "PRIMARY",
            )
            for row in rows
        ])

    def _foreign_keys(
        self, conn: Any, table: str, scope: str, cancel: CancelToken
    ) -> List[ForeignKey]:
        rows = self._fetch(
            conn, _MYSQL_FOREIGN_KEYS, {"schema": scope, "table": table},
            cancel=cancel, table=table,
        )
        return [
            ForeignKey(
                name=_text(row["constraint_name"]),
                column=_text(row["column_name"]),
                ref_table=_text(row["ref_table"]),
                ref_column=_text(row["ref_column"]),
                on_delete=_text(row["delete_rule"]) or "NO ACTION",
                on_update=_text(row["update_rule"]) or "NO ACTION",
            )
            for row in rows
        ]


# ---------------------------------------------------------------------------
# PostgreSQL: pg_catalog
# ---------------------------------------------------------------------------

_PG_TABLES = """
SELECT c.relname AS table_name,
       obj_description(c.oid, 'pg_class') AS table_comment
FROM pg_catalog.pg_class c
JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
WHERE n.nspname = :schema AND c.relkind IN ('r', 'p')
ORDER BY c.relname
"""

_PG_TABLE_COMMENT = """
SELECT obj_description(c.oid, 'pg_class') AS table_comment
FROM pg_catalog.pg_class c
JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
WHERE n.nspname = :schema AND c.relname = :table
"""

_PG_COLUMNS = """
SELECT a.attname AS column_name,
       pg_catalog.format_type(a.atttypid, a.atttypmod) AS data_type,
       NOT a.attnotnull AS is_nullable,
       pg_catalog.pg_get_expr(d.adbin, d.adrelid) AS column_default,
       pg_catalog.col_description(c.oid, a.attnum) AS column_comment,
       COALESCE(pk.is_pk, false) AS is_primary_key,
       a.attidentity AS identity
FROM pg_catalog.pg_attribute a
JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
LEFT JOIN pg_catalog.pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
LEFT JOIN (
    SELECT con.conrelid, unnest(con.conkey) AS attnum, true AS is_pk
    FROM pg_catalog.pg_constraint con
    WHERE con.contype = 'p'
) pk ON pk.conrelid = c.oid AND pk.attnum = a.attnum
WHERE n.nspname = :schema AND c.relname = :table
  AND a.attnum > 0 AND NOT a.attisdropped
ORDER BY a.attnum
"""

_PG_INDEXES = """
SELECT i.relname AS index_name,
       a.attname AS column_name,
       ix.indisunique AS is_unique,
       ix.indisprimary AS is_primary
FROM pg_catalog.pg_index ix
JOIN pg_catalog.pg_class t ON t.oid = ix.indrelid
JOIN pg_catalog.pg_class i ON i.oid = ix.indexrelid
JOIN pg_catalog.pg_namespace n ON n.oid = t.relnamespace
CROSS JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord)
JOIN pg_catalog.pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
WHERE n.nspname = :schema AND t.relname = :table
ORDER BY i.relname, k.ord
"""

_PG_FOREIGN_KEYS = """
SELECT con.conname AS constraint_name,
       a.attname AS column_name,
       rt.relname AS ref_table,
       ra.attname AS ref_column,
       con.confdeltype AS delete_code,
       con.confupdtype AS update_code
FROM pg_catalog.pg_constraint con
JOIN pg_catalog.pg_class t ON t.oid = con.conrelid
JOIN pg_catalog.pg_namespace n ON n.oid = t.relnamespace
JOIN pg_catalog.pg_class rt ON rt.oid = con.confrelid
CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
    WITH ORDINALITY AS k(attnum, ref_attnum, position)
JOIN pg_catalog.pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
JOIN pg_catalog.pg_attribute ra ON ra.attrelid = rt.oid AND ra.attnum = k.ref_attnum
WHERE con.contype = 'f' AND n.nspname = :schema AND t.relname = :table
ORDER BY con.conname, k.position
"""

PG_FK_ACTIONS: Dict[str, str] = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}


class PostgresParser(DialectParser):
    """PostgreSQL, one namespace (``public`` unless told otherwise)."""

    dialect = DatabaseType.POSTGRES

    def __init__(self, schema: str = "public") -> None:
        self.schema: str = schema

    def _database_name(self, conn: Any, cancel: CancelToken) -> str:
        return _text(self._scalar(conn, "SELECT current_database()", cancel=cancel))

    def _scope(
        self, conn: Any, cancel: CancelToken, database: Optional[str] = None
    ) -> str:
        return self.schema

    def _list_tables(self, conn: Any, scope: str, cancel: CancelToken) -> List[str]:
        rows = self._fetch(conn, _PG_TABLES, {"schema": scope}, cancel=cancel)
        return [_text(row["table_name"]) for row in rows]

    def _table_comment(self, conn: Any, table: str, scope: str, cancel: CancelToken) -> str:
        rows = self._fetch(
            conn, _PG_TABLE_COMMENT, {"schema": scope, "table": table},
            cancel=cancel, table=table,
        )
        return _text(rows[0]["table_comment"]) if rows else ""

    def _columns(self, conn: Any, table: str, scope: str, cancel: CancelToken) -> List[Column]:
        rows = self._fetch(
            conn, _PG_COLUMNS, {"schema": scope, "table": table},
            cancel=cancel, table=table,
        )
        columns: List[Column] = []
        for row in rows:
            data_type: str = _text(row["data_type"])
            default: Optional[str] = (
                None if row["column_default"] is None else _text(row["column_default"])
            )
            length, precision, scale = parse_type_modifiers(data_type)
            columns.append(self._make_column(
                name=_text(row["column_name"]),
                data_type=data_type,
                nullable=_truthy(row["is_nullable"]),
                default=default,
                comment=_text(row["column_comment"]),
                is_primary_key=_truthy(row["is_primary_key"]),
                is_auto_increment=(
                    (default or "").startswith("nextval(")
                    or _text(row["identity"]) in {"a", "d"}
                ),
                length=length,
                precision=precision,
                scale=scale,
            ))
        return columns

    def _indexes(self, conn: Any, table: str, scope: str, cancel: CancelToken) -> List[Index]:
        rows = self._fetch(
            conn, _PG_INDEXES, {"schema": scope, "table": table},
            cancel=cancel, table=table,
        )
        return self._group_indexes([
            (
                _text(row["index_name"]),
                _text(row["column_name"]),
                _truthy(row["is_unique"]),
                _truthy(row["is_primary"]),
            )
            for row in rows
        ])

    def _foreign_keys(
        self, conn: Any, table: str, scope: str, cancel: CancelToken
    ) -> List[ForeignKey]:
        rows = self._fetch(
            conn, _PG_FOREIGN_KEYS, {"schema": scope, "table": table},
            cancel=cancel, table=table,
        )
        return [
            ForeignKey(
                name=_text(row["constraint_name"]),
                column=_text(row["column_name"]),
                ref_table=_text(row["ref_table"]),
                ref_column=_text(row["ref_column"]),
                on_delete=PG_FK_ACTIONS.get(_text(row["delete_code"]), "NO ACTION"),
                on_update=PG_FK_ACTIONS.get(_text(row["update_code"]), "NO ACTION"),
            )
            for row in rows
        ]


# ---------------------------------------------------------------------------
# SQLite: PRAGMA
# ---------------------------------------------------------------------------

_SQLITE_TABLES = """
SELECT name FROM sqlite_master
WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
ORDER BY name
"""


def _quote_sqlite(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class SQLiteParser(DialectParser):
    """
    SQLite.  There is no schema concept: the schema name is always ``main``
    and tables have no comments.
    """

    dialect = DatabaseType.SQLITE

    def _database_name(self, conn: Any, cancel: CancelToken) -> str:
        return "main"

    def _scope(
        self, conn: Any, cancel: CancelToken, database: Optional[str] = None
    ) -> str:
        return "main"

    def _list_tables(self, conn: Any, scope: str, cancel: CancelToken) -> List[str]:
        return [_text(row["name"]) for row in self._fetch(conn, _SQLITE_TABLES, cancel=cancel)]

    def _table_comment(self, conn: Any, table: str, scope: str, cancel: CancelToken) -> str:
        return ""

    def _table_info(self, conn: Any, table: str, cancel: CancelToken) -> List[Row]:
        return self._fetch(
            conn, f"PRAGMA table_info({_quote_sqlite(table)})", cancel=cancel, table=table
        )

    def _columns(self, conn: Any, table: str, scope: str, cancel: CancelToken) -> List[Column]:
        rows = self._table_info(conn, table, cancel)
        pk_rows = [row for row in rows if _int(row["pk"]) > 0]
        single_pk: bool = len(pk_rows) == 1

        columns: List[Column] = []
        for row in rows:
            data_type: str = _text(row["type"])
            is_pk: bool = _int(row["pk"]) > 0
            length, precision, scale = parse_type_modifiers(data_type)
            default: Any = row["dflt_value"]
            columns.append(self._make_column(
                name=_text(row["name"]),
                data_type=data_type,
                nullable=not _truthy(row["notnull"]),
                default=None if default is None else _text(default),
                is_primary_key=is_pk,
                is_auto_increment=is_pk and single_pk and is_integer_type(data_type),
                length=length,
                precision=precision,
                scale=scale,
            ))
        return columns

    def _indexes(self, conn: Any, table: str, scope: str, cancel: CancelToken) -> List[Index]:
        index_rows = self._fetch(
            conn, f"PRAGMA index_list({_quote_sqlite(table)})", cancel=cancel, table=table
        )
        indexes: List[Index] = []
        for index_row in index_rows:
            index_name: str = _text(index_row["name"])
            info_rows = self._fetch(
                conn, f"PRAGMA index_info({_quote_sqlite(index_name)})",
                cancel=cancel, table=table,
            )
            members: List[Row] = sorted(info_rows, key=lambda r: _int(r["seqno"]))
            indexes.append(Index(
                name=index_name,
                columns=[_text(r["name"]) for r in members],
                is_unique=_truthy(index_row["unique"]),
                is_primary=_text(index_row["origin"]) == "pk",
            ))
        return indexes

    def _foreign_keys(
        self, conn: Any, table: str, scope: str, cancel: CancelToken
    ) -> List[ForeignKey]:
        rows = self._fetch(
            conn, f"PRAGMA foreign_key_list({_quote_sqlite(table)})",
            cancel=cancel, table=table,
        )
        foreign_keys: List[ForeignKey] = []
        # Columns of one composite constraint share the name of its first column.
        names: Dict[int, str] = {}
        for row in sorted(rows, key=lambda r: (_int(r["id"]), _int(r["seq"]))):
            column: str = _text(row["from"])
            name: str = names.setdefault(_int(row["id"]), f"fk_{table}_{column}")
            ref_table: str = _text(row["table"])
            ref_column: str = _text(row["to"]) or self._referenced_key(
                conn, ref_table, cancel, table, _int(row["seq"]) + 1
            )
            foreign_keys.append(ForeignKey(
                name=name,
                column=column,
                ref_table=ref_table,
                ref_column=ref_column,
                on_delete=_text(row["on_delete"]) or "NO ACTION",
                on_update=_text(row["on_update"]) or "NO ACTION",
            ))
        return foreign_keys

    def _referenced_key(
        self, conn: Any, ref_table: str, cancel: CancelToken, table: str, position: int = 1
    ) -> str:
        """``REFERENCES parent`` without a column targets the parent's key."""
        for row in self._table_info(conn, ref_table, cancel):
            if _int(row["pk"]) == position:
                return _text(row["name"])
        raise ParseError(
            f"foreign key references {ref_table} which has no primary key",
            table=table,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def new_parser(database_type: DatabaseType, **options: Any) -> DialectParser:
    """Parser for one of the three supported dialects."""
    database_type = DatabaseType(database_type)
    if database_type is DatabaseType.MYSQL:
        return MySQLParser(**options)
    if database_type is DatabaseType.POSTGRES:
        return PostgresParser(**options)
    return SQLiteParser(**options)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "CancelToken",
    "check_cancelled",
    "DialectParser",
    "MySQLParser",
    "PostgresParser",
    "SQLiteParser",
    "PG_FK_ACTIONS",
    "new_parser",
]

logger.debug("sqlgen.parsers loaded.")
