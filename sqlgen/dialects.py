# File: sqlgen/dialects.py
"""
sqlgen - Forward SQL Generation
================================
Turns an annotated Python record type (a ``dataclass`` or a pydantic model)
into dialect-specific SQL text: CREATE TABLE plus the four CRUD statements.

Column options live in an ``"sql"`` annotation string, a semicolon separated
list of ``key`` or ``key:value`` items::

    @dataclass
    class User:
        id: int = sql_field("primaryKey")
        name: str = sql_field("size:50;not null;uniqueIndex")
        status: int = sql_field("default:1;comment:account state", default=1)

    class Post(BaseModel):
        id: int = Field(json_schema_extra={"sql": "primaryKey"})
        title: str = Field(json_schema_extra={"sql": "size:200"})

Recognised keys: ``primaryKey``, ``autoIncrement``, ``unique`` /
``uniqueIndex``, ``index``, ``not null``, ``size``, ``default``, ``comment``,
``type``, ``column``, ``embedded`` and ``-`` (skip the field).  Keys are
matched case-insensitively.

The output is returned as text; nothing here touches a database or the
file system.
"""

from __future__ import annotations

import abc
import dataclasses
import inspect
import logging
import typing
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

from sqlgen.ddl import MYSQL_TABLE_OPTIONS
from sqlgen.errors import GenerateError
from sqlgen.models import DatabaseType
from sqlgen.naming import to_plural, to_snake_case
from sqlgen.typemap import python_type_kind, sql_type_for, unwrap_optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.dialects")

SQL_TAG: str = "sql"

# Conventional column names the CRUD statements treat specially.
CREATED_AT: str = "created_at"
UPDATED_AT: str = "updated_at"
DELETED_AT: str = "deleted_at"


# ---------------------------------------------------------------------------
# Field description
# ---------------------------------------------------------------------------


@dataclass
class Field:
    """One column derived from a record attribute."""

    name: str
    attribute: str
    kind: str = "string"
    explicit_type: str = ""
    is_primary_key: bool = False
    is_auto_increment: bool = False
    is_unique: bool = False
    is_index: bool = False
    is_not_null: bool = False
    size: int = 0
    default: str = ""
    comment: str = ""


def sql_field(tag: str = "", **kwargs: Any) -> Any:
    """``dataclasses.field`` carrying an ``sql`` annotation string."""
    metadata: Dict[str, Any] = dict(kwargs.pop("metadata", None) or {})
    metadata[SQL_TAG] = tag
    return dataclasses.field(metadata=metadata, **kwargs)


def parse_sql_tag(tag: str) -> Dict[str, str]:
    """
    Split ``"primaryKey;size:50;not null"`` into a dict keyed by the
    lowercased key with spaces removed (``primarykey``, ``size``, ``notnull``).
    """
    options: Dict[str, str] = {}
    for part in (tag or "").split(";"):
        part = part.strip()
        if not part:
            continue
        key, _, value = part.partition(":")
        options[key.strip().lower().replace(" ", "").replace("_", "")] = value.strip()
    return options


def _as_bool(value: str) -> bool:
    return value.strip().lower() not in {"false", "0", "no", "off"}


def _build_field(attribute: str, annotation: Any, options: Dict[str, str]) -> Field:
    kind: str = python_type_kind(annotation)
    try:
        size: int = int(options.get("size", "0") or 0)
    except ValueError as exc:
        raise GenerateError(
            f"invalid size for field {attribute}: {options['size']!r}", cause=exc
        ) from exc

    primary: bool = "primarykey" in options and _as_bool(options["primarykey"])
    if "autoincrement" in options:
        auto: bool = primary and _as_bool(options["autoincrement"])
    else:
        auto = primary and kind == "int"

    return Field(
        name=options.get("column") or to_snake_case(attribute),
        attribute=attribute,
        kind=kind,
        explicit_type=options.get("type", ""),
        is_primary_key=primary,
        is_auto_increment=auto,
        is_unique=any(k in options for k in ("unique", "uniqueindex")),
        is_index="index" in options,
        is_not_null="notnull" in options,
        size=size,
        default=options.get("default", ""),
        comment=options.get("comment", ""),
    )


# ---------------------------------------------------------------------------
# Reflection
# ---------------------------------------------------------------------------


def _model_class(model: Any) -> Type[Any]:
    return model if isinstance(model, type) else type(model)


def _annotated_attributes(cls: Type[Any]) -> List[Tuple[str, Any, str]]:
    """``(attribute, annotation, sql tag)`` for every declared field."""
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        entries: List[Tuple[str, Any, str]] = []
        for name, info in cls.model_fields.items():
            extra: Any = info.json_schema_extra
            tag: str = extra.get(SQL_TAG, "") if isinstance(extra, dict) else ""
            entries.append((name, info.annotation, str(tag)))
        return entries

    if dataclasses.is_dataclass(cls):
        try:
            hints: Dict[str, Any] = typing.get_type_hints(cls, include_extras=True)
        except (NameError, TypeError) as exc:
            raise GenerateError(
                f"cannot resolve annotations of {cls.__name__}", cause=exc
            ) from exc
        return [
            (f.name, hints.get(f.name, f.type), str(f.metadata.get(SQL_TAG, "")))
            for f in dataclasses.fields(cls)
        ]

    raise GenerateError(f"{cls.__name__} is not a dataclass or pydantic model")


def reflect_fields(model: Any) -> List[Field]:
    """
    Columns of *model* (a record class or instance) in declaration order.

    Attributes starting with ``_`` and those tagged ``-`` are skipped;
    attributes tagged ``embedded`` contribute the columns of their own type.
    A key spanning several columns is never auto-incremented.
    """
    cls: Type[Any] = _model_class(model)
    fields: List[Field] = []
    for attribute, annotation, tag in _annotated_attributes(cls):
        if attribute.startswith("_"):
            continue
        options: Dict[str, str] = parse_sql_tag(tag)
        if "-" in options:
            continue
        if "embedded" in options:
            inner, _ = unwrap_optional(annotation)
            if typing.get_origin(inner) is typing.Annotated:
                inner = typing.get_args(inner)[0]
            try:
                fields.extend(reflect_fields(inner))
            except GenerateError as exc:
                raise GenerateError(
                    f"cannot flatten embedded field {attribute}",
                    table=cls.__name__,
                    cause=exc,
                ) from exc
            continue
        fields.append(_build_field(attribute, annotation, options))

    # Composite keys are supplied by the caller, never generated.
    keys: List[Field] = [f for f in fields if f.is_primary_key]
    if len(keys) > 1:
        for key in keys:
            key.is_auto_increment = False
    return fields


def table_name_for(model: Any) -> str:
    """
    ``__tablename__`` if declared, else the result of ``table_name()``, else
    the plural snake case of the class name (``UserProfile`` -> ``user_profiles``).
    """
    cls: Type[Any] = _model_class(model)
    explicit: Any = getattr(cls, "__tablename__", None)
    if isinstance(explicit, str) and explicit:
        return explicit

    method: Any = getattr(model, "table_name", None)
    # An instance method looked up on the class needs an instance to call.
    if callable(method) and not (isinstance(model, type) and inspect.isfunction(method)):
        name: Any = method()
        if name:
            return str(name)
    return to_plural(to_snake_case(cls.__name__))


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SQLResult:
    table_name: str
    create_table: str
    insert: str
    select: str
    update: str
    delete: str


def _sql_string(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


# ---------------------------------------------------------------------------
# Dialect generators
# ---------------------------------------------------------------------------


class DialectGenerator(abc.ABC):
    """
    Shared CRUD statement builder.  Subclasses own identifier quoting,
    placeholders and the CREATE TABLE layout.
    """

    dialect: DatabaseType

    def get_dialect(self) -> DatabaseType:
        return self.dialect

    # -- Dialect hooks ------------------------------------------------------

    def quote(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def placeholder(self, position: int) -> str:
        return "?"

    def column_type(self, field: Field) -> str:
        if field.explicit_type:
            return field.explicit_type
        return sql_type_for(field.kind, self.dialect, field.size)

    @abc.abstractmethod
    def get_create_table_sql(self, table: str, fields: List[Field]) -> str: ...

    # -- Helpers ------------------------------------------------------------

    def _column_list(self, fields: List[Field]) -> str:
        return ", ".join(self.quote(f.name) for f in fields)

    @staticmethod
    def _key_column(fields: List[Field]) -> str:
        for field in fields:
            if field.is_primary_key:
                return field.name
        return "id"

    @staticmethod
    def _has_column(fields: List[Field], name: str) -> bool:
        return any(f.name == name for f in fields)

    def _not_deleted(self, fields: List[Field]) -> str:
        if self._has_column(fields, DELETED_AT):
            return f"{self.quote(DELETED_AT)} IS NULL"
        return ""

    def _index_name(self, table: str, field: Field) -> str:
        return f"idx_{table}_{field.name}"

    def _primary_key_constraint(self, fields: List[Field]) -> Optional[str]:
        """Table-level constraint, only needed for composite keys."""
        keys: List[Field] = [f for f in fields if f.is_primary_key]
        if len(keys) < 2:
            return None
        return f"    PRIMARY KEY ({self._column_list(keys)})"

    def _column_tail(self, field: Field, inline_primary: bool) -> str:
        tail: str = ""
        if field.is_not_null and not (field.is_primary_key and inline_primary):
            tail += " NOT NULL"
        if field.default:
            tail += f" DEFAULT {field.default}"
        return tail

    # -- Statements ---------------------------------------------------------

    def insert_fields(self, fields: List[Field]) -> List[Field]:
        return [f for f in fields if not (f.is_primary_key and f.is_auto_increment)]

    def update_fields(self, fields: List[Field]) -> List[Field]:
        return [
            f
            for f in fields
            if not (f.is_primary_key and f.is_auto_increment)
            and f.name not in {CREATED_AT, UPDATED_AT, DELETED_AT}
        ]

    def get_insert_sql(self, table: str, fields: List[Field]) -> str:
        columns: List[Field] = self.insert_fields(fields)
        values: str = ", ".join(self.placeholder(i) for i in range(1, len(columns) + 1))
        return (
            f"INSERT INTO {self.quote(table)} ({self._column_list(columns)}) "
            f"VALUES ({values});"
        )

    def get_select_sql(self, table: str, fields: List[Field]) -> str:
        columns: str = self._column_list(fields)
        source: str = f"SELECT {columns} FROM {self.quote(table)}"
        key: str = self.quote(self._key_column(fields))
        alive: str = self._not_deleted(fields)
        where_all: str = f" WHERE {alive}" if alive else ""
        and_alive: str = f" AND {alive}" if alive else ""

        return (
            f"-- select all rows\n{source}{where_all};\n\n"
            f"-- select by primary key\n"
            f"{source} WHERE {key} = {self.placeholder(1)}{and_alive};\n\n"
            f"-- paged select\n"
            f"{source}{where_all} ORDER BY {key} "
            f"LIMIT {self.placeholder(1)} OFFSET {self.placeholder(2)};"
        )

    def get_update_sql(self, table: str, fields: List[Field]) -> str:
        assignments: List[str] = [
            f"{self.quote(f.name)} = {self.placeholder(i)}"
            for i, f in enumerate(self.update_fields(fields), start=1)
        ]
        if self._has_column(fields, UPDATED_AT):
            assignments.append(f"{self.quote(UPDATED_AT)} = CURRENT_TIMESTAMP")
        if not assignments:
            return f"-- {table} has no updatable columns"

        position: int = len(self.update_fields(fields)) + 1
        alive: str = self._not_deleted(fields)
        return (
            f"UPDATE {self.quote(table)} SET {', '.join(assignments)} "
            f"WHERE {self.quote(self._key_column(fields))} = {self.placeholder(position)}"
            f"{' AND ' + alive if alive else ''};"
        )

    def get_delete_sql(self, table: str, fields: List[Field]) -> str:
        key: str = self.quote(self._key_column(fields))
        marker: str = self.quote(DELETED_AT)
        return (
            f"-- soft delete\n"
            f"UPDATE {self.quote(table)} SET {marker} = CURRENT_TIMESTAMP "
            f"WHERE {key} = {self.placeholder(1)} AND {marker} IS NULL;\n\n"
            f"-- hard delete (use with care)\n"
            f"DELETE FROM {self.quote(table)} WHERE {key} = {self.placeholder(1)};"
        )

    def generate_sql(self, model: Any) -> SQLResult:
        """All five statements for *model* (a record class or instance)."""
        table: str = table_name_for(model)
        fields: List[Field] = reflect_fields(model)
        if not fields:
            raise GenerateError("record type has no mapped fields", table=table)
        logger.debug(
            "Generating %s SQL for %s (%d columns).", self.dialect.value, table, len(fields)
        )
        return SQLResult(
            table_name=table,
            create_table=self.get_create_table_sql(table, fields),
            insert=self.get_insert_sql(table, fields),
            select=self.get_select_sql(table, fields),
            update=self.get_update_sql(table, fields),
            delete=self.get_delete_sql(table, fields),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class MySQLGenerator(DialectGenerator):
    dialect = DatabaseType.MYSQL

    TABLE_OPTIONS: str = MYSQL_TABLE_OPTIONS

    def quote(self, name: str) -> str:
        return "`" + name.replace("`", "``") + "`"

    def get_create_table_sql(self, table: str, fields: List[Field]) -> str:
        composite: Optional[str] = self._primary_key_constraint(fields)
        lines: List[str] = []
        keys: List[str] = []
        for field in fields:
            line: str = f"    {self.quote(field.name)} {self.column_type(field)}"
            inline_primary: bool = field.is_primary_key and composite is None
            if inline_primary:
                line += " AUTO_INCREMENT PRIMARY KEY" if field.is_auto_increment else " PRIMARY KEY"
            line += self._column_tail(field, inline_primary)
            if field.comment:
                line += f" COMMENT {_sql_string(field.comment)}"
            lines.append(line)

            index_name: str = self.quote(self._index_name(table, field))
            if field.is_unique and not field.is_primary_key:
                keys.append(f"    UNIQUE KEY {index_name} ({self.quote(field.name)})")
            elif field.is_index:
                keys.append(f"    KEY {index_name} ({self.quote(field.name)})")

        if composite:
            lines.append(composite)
        lines.extend(keys)
        return (
            f"CREATE TABLE {self.quote(table)} (\n"
            + ",\n".join(lines)
            + f"\n) {self.TABLE_OPTIONS};"
        )


class PostgresGenerator(DialectGenerator):
    dialect = DatabaseType.POSTGRES

    _SERIALS: Dict[str, str] = {
        "SMALLINT": "SMALLSERIAL",
        "INT": "SERIAL",
        "INTEGER": "SERIAL",
        "BIGINT": "BIGSERIAL",
    }

    def placeholder(self, position: int) -> str:
        return f"${position}"

    def column_type(self, field: Field) -> str:
        sql_type: str = super().column_type(field)
        if field.is_primary_key and field.is_auto_increment:
            return self._SERIALS.get(sql_type.upper(), "BIGSERIAL")
        return sql_type

    def get_create_table_sql(self, table: str, fields: List[Field]) -> str:
        composite: Optional[str] = self._primary_key_constraint(fields)
        lines: List[str] = []
        after: List[str] = []
        for field in fields:
            line: str = f"    {self.quote(field.name)} {self.column_type(field)}"
            inline_primary: bool = field.is_primary_key and composite is None
            if inline_primary:
                line += " PRIMARY KEY"
            line += self._column_tail(field, inline_primary)
            lines.append(line)

            target: str = f"ON {self.quote(table)} ({self.quote(field.name)})"
            if field.is_unique and not field.is_primary_key:
                after.append(f"CREATE UNIQUE INDEX {self._index_name(table, field)} {target};")
            elif field.is_index:
                after.append(f"CREATE INDEX {self._index_name(table, field)} {target};")
            if field.comment:
                after.append(
                    f"COMMENT ON COLUMN {self.quote(table)}.{self.quote(field.name)} "
                    f"IS {_sql_string(field.comment)};"
                )

        if composite:
            lines.append(composite)
        statement: str = f"CREATE TABLE {self.quote(table)} (\n" + ",\n".join(lines) + "\n);"
        return "\n".join([statement, *after])

    def get_insert_sql(self, table: str, fields: List[Field]) -> str:
        statement: str = super().get_insert_sql(table, fields)
        if not any(f.is_primary_key for f in fields):
            return statement
        return statement[:-1] + f" RETURNING {self.quote(self._key_column(fields))};"


class SQLiteGenerator(DialectGenerator):
    dialect = DatabaseType.SQLITE

    def get_create_table_sql(self, table: str, fields: List[Field]) -> str:
        composite: Optional[str] = self._primary_key_constraint(fields)
        lines: List[str] = []
        indexes: List[str] = []
        for field in fields:
            inline_primary: bool = field.is_primary_key and composite is None
            if inline_primary and field.is_auto_increment:
                line: str = f"    {self.quote(field.name)} INTEGER PRIMARY KEY AUTOINCREMENT"
            else:
                line = f"    {self.quote(field.name)} {self.column_type(field)}"
                if inline_primary:
                    line += " PRIMARY KEY"
            line += self._column_tail(field, inline_primary)
            lines.append(line)

            target: str = f"ON {self.quote(table)} ({self.quote(field.name)})"
            index_name: str = self.quote(self._index_name(table, field))
            if field.is_unique and not field.is_primary_key:
                indexes.append(f"CREATE UNIQUE INDEX {index_name} {target};")
            elif field.is_index:
                indexes.append(f"CREATE INDEX {index_name} {target};")

        if composite:
            lines.append(composite)
        statement: str = f"CREATE TABLE {self.quote(table)} (\n" + ",\n".join(lines) + "\n);"
        return "\n".join([statement, *indexes])


def new_dialect_generator(database_type: DatabaseType) -> DialectGenerator:
    database_type = DatabaseType(database_type)
    if database_type is DatabaseType.MYSQL:
        return MySQLGenerator()
    if database_type is DatabaseType.POSTGRES:
        return PostgresGenerator()
    return SQLiteGenerator()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "Field",
    "sql_field",
    "parse_sql_tag",
    "reflect_fields",
    "table_name_for",
    "SQLResult",
    "DialectGenerator",
    "MySQLGenerator",
    "PostgresGenerator",
    "SQLiteGenerator",
    "new_dialect_generator",
]

logger.debug("sqlgen.dialects loaded.")
