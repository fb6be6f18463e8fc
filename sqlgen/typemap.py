# File: sqlgen/typemap.py
"""
sqlgen - SQL <-> Go / Python Type Mapping
==========================================
Two static tables live here:

* ``TYPE_TABLE`` maps a *normalised* SQL type name to the Go type used in
  generated entities (non-nullable and nullable variants, plus the import
  the type needs).  Used by the catalog parsers.
* ``INVERSE_TYPE_TABLE`` maps a Python annotation kind to the column type of
  each dialect.  Used by the forward SQL generators.

Both are read-only after import.  ``map_type`` never raises: an unknown SQL
type degrades to ``interface{}``.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import decimal
import logging
import re
import types
import typing
import uuid
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from sqlgen.models import DatabaseType

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.typemap")

# ---------------------------------------------------------------------------
# SQL -> Go
# ---------------------------------------------------------------------------

DYNAMIC_TYPE: str = "interface{}"

_TIME: str = "time"
_JSON: str = "encoding/json"


class TypeMapping(NamedTuple):
    go_type: str
    nullable_type: str
    import_path: str = ""


def _scalar(go_type: str, import_path: str = "") -> TypeMapping:
    return TypeMapping(go_type, "*" + go_type, import_path)


def _nilable(go_type: str, import_path: str = "") -> TypeMapping:
    return TypeMapping(go_type, go_type, import_path)


TYPE_TABLE: Dict[str, TypeMapping] = {
    # signed integers
    "tinyint": _scalar("int8"),
    "smallint": _scalar("int16"),
    "int2": _scalar("int16"),
    "mediumint": _scalar("int32"),
    "int": _scalar("int"),
    "integer": _scalar("int"),
    "int4": _scalar("int32"),
    "bigint": _scalar("int64"),
    "int8": _scalar("int64"),
    "smallserial": _scalar("int16"),
    "serial": _scalar("int32"),
    "bigserial": _scalar("int64"),
    "year": _scalar("int"),
    # unsigned integers
    "tinyint unsigned": _scalar("uint8"),
    "smallint unsigned": _scalar("uint16"),
    "mediumint unsigned": _scalar("uint32"),
    "int unsigned": _scalar("uint32"),
    "integer unsigned": _scalar("uint32"),
    "bigint unsigned": _scalar("uint64"),
    # floating point
    "float": _scalar("float32"),
    "float4": _scalar("float32"),
    "real": _scalar("float64"),
    "double": _scalar("float64"),
    "double precision": _scalar("float64"),
    "float8": _scalar("float64"),
    # fixed point, kept as text to avoid precision loss
    "decimal": _scalar("string"),
    "numeric": _scalar("string"),
    "money": _scalar("string"),
    # text
    "char": _scalar("string"),
    "character": _scalar("string"),
    "varchar": _scalar("string"),
    "character varying": _scalar("string"),
    "nchar": _scalar("string"),
    "nvarchar": _scalar("string"),
    "tinytext": _scalar("string"),
    "text": _scalar("string"),
    "mediumtext": _scalar("string"),
    "longtext": _scalar("string"),
    "enum": _scalar("string"),
    "set": _scalar("string"),
    "uuid": _scalar("string"),
    "citext": _scalar("string"),
    # binary
    "binary": _nilable("[]byte"),
    "varbinary": _nilable("[]byte"),
    "tinyblob": _nilable("[]byte"),
    "blob": _nilable("[]byte"),
    "mediumblob": _nilable("[]byte"),
    "longblob": _nilable("[]byte"),
    "bytea": _nilable("[]byte"),
    # temporal
    "date": _scalar("time.Time", _TIME),
    "time": _scalar("time.Time", _TIME),
    "datetime": _scalar("time.Time", _TIME),
    "timestamp": _scalar("time.Time", _TIME),
    "timestamptz": _scalar("time.Time", _TIME),
    "timestamp with time zone": _scalar("time.Time", _TIME),
    "timestamp without time zone": _scalar("time.Time", _TIME),
    "time with time zone": _scalar("time.Time", _TIME),
    "time without time zone": _scalar("time.Time", _TIME),
    # boolean
    "bool": _scalar("bool"),
    "boolean": _scalar("bool"),
    # JSON
    "json": _nilable("json.RawMessage", _JSON),
    "jsonb": _nilable("json.RawMessage", _JSON),
}

_ARGS_RE: re.Pattern[str] = re.compile(r"\([^)]*\)")
_SPACES_RE: re.Pattern[str] = re.compile(r"\s+")
_BOOL_INT_RE: re.Pattern[str] = re.compile(r"^tinyint\s*\(\s*1\s*\)")
_MODIFIERS_RE: re.Pattern[str] = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")
_INTEGER_GO_TYPES = frozenset(
    {"int", "int8", "int16", "int32", "int64", "uint8", "uint16", "uint32", "uint64"}
)


def normalize_type(raw: str) -> str:
    """
    Table key for a raw catalog type.

    Lowercases and drops parenthesised arguments, keeping trailing words::

        >>> normalize_type("VARCHAR(255)")
        'varchar'
        >>> normalize_type("int(10) unsigned zerofill")
        'int unsigned'
    """
    text: str = _ARGS_RE.sub(" ", raw.strip().lower())
    words: List[str] = [w for w in _SPACES_RE.split(text) if w and w != "zerofill"]
    return " ".join(words)


def lookup(raw: str) -> Optional[TypeMapping]:
    key: str = normalize_type(raw)
    mapping: Optional[TypeMapping] = TYPE_TABLE.get(key)
    if mapping is None and " " in key:
        mapping = TYPE_TABLE.get(key.split(" ", 1)[0])
    return mapping


def map_type(raw: str, nullable: bool) -> Tuple[str, str]:
    """
    Map a raw SQL type to ``(go_type, import_path)``.

    ``tinyint(1)`` is always ``bool``.  Unknown types map to ``interface{}``
    with no import.
    """
    if _BOOL_INT_RE.match(raw.strip().lower()):
        return ("*bool" if nullable else "bool"), ""

    mapping: Optional[TypeMapping] = lookup(raw)
    if mapping is None:
        logger.debug("Unmapped SQL type %r, using %s.", raw, DYNAMIC_TYPE)
        return DYNAMIC_TYPE, ""
    go_type: str = mapping.nullable_type if nullable else mapping.go_type
    return go_type, mapping.import_path


def is_integer_type(raw: str) -> bool:
    mapping: Optional[TypeMapping] = lookup(raw)
    return mapping is not None and mapping.go_type in _INTEGER_GO_TYPES


def parse_type_modifiers(raw: str) -> Tuple[int, int, int]:
    """
    Extract ``(length, precision, scale)`` from a formatted type string.

    ``numeric(10,2)`` gives precision and scale, ``varchar(255)`` a length.
    """
    match = _MODIFIERS_RE.search(raw)
    if match is None:
        return 0, 0, 0
    first: int = int(match.group(1))
    second: int = int(match.group(2)) if match.group(2) else 0
    if match.group(2) or normalize_type(raw).split(" ")[0] in {"decimal", "numeric"}:
        return 0, first, second
    return first, 0, 0


# ---------------------------------------------------------------------------
# Python -> SQL
# ---------------------------------------------------------------------------

_PY_KINDS: Dict[Any, str] = {
    bool: "bool",
    int: "int",
    float: "float",
    decimal.Decimal: "decimal",
    str: "string",
    bytes: "bytes",
    bytearray: "bytes",
    dt.datetime: "datetime",
    dt.date: "date",
    dt.time: "time",
    uuid.UUID: "uuid",
    dict: "json",
    list: "json",
}

INVERSE_TYPE_TABLE: Dict[DatabaseType, Dict[str, str]] = {
    DatabaseType.MYSQL: {
        "bool": "TINYINT(1)",
        "int": "BIGINT",
        "float": "DOUBLE",
        "decimal": "DECIMAL(20,6)",
        "string": "VARCHAR",
        "bytes": "BLOB",
        "datetime": "DATETIME",
        "date": "DATE",
        "time": "TIME",
        "uuid": "CHAR(36)",
        "json": "JSON",
    },
    DatabaseType.POSTGRES: {
        "bool": "BOOLEAN",
        "int": "BIGINT",
        "float": "DOUBLE PRECISION",
        "decimal": "NUMERIC(20,6)",
        "string": "VARCHAR",
        "bytes": "BYTEA",
        "datetime": "TIMESTAMP WITH TIME ZONE",
        "date": "DATE",
        "time": "TIME",
        "uuid": "UUID",
        "json": "JSONB",
    },
    DatabaseType.SQLITE: {
        "bool": "BOOLEAN",
        "int": "INTEGER",
        "float": "REAL",
        "decimal": "NUMERIC",
        "string": "TEXT",
        "bytes": "BLOB",
        "datetime": "DATETIME",
        "date": "DATE",
        "time": "TIME",
        "uuid": "TEXT",
        "json": "TEXT",
    },
}

_MAX_VARCHAR: int = 255


def unwrap_optional(annotation: Any) -> Tuple[Any, bool]:
    """Return ``(inner, is_optional)`` for ``Optional[X]`` / ``X | None``."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
        return annotation, True
    return annotation, False


def python_type_kind(annotation: Any) -> str:
    """
    Classify a Python annotation into one of the inverse-table kinds.

    ``Annotated`` wrappers and ``Optional`` are stripped, generic containers
    collapse to their origin; anything unknown is ``"string"``.
    """
    if typing.get_origin(annotation) is typing.Annotated:
        annotation = typing.get_args(annotation)[0]
    annotation, _ = unwrap_optional(annotation)
    origin = typing.get_origin(annotation)
    if origin is not None:
        annotation = origin
    if isinstance(annotation, type):
        for py_type in annotation.__mro__:
            if py_type in _PY_KINDS:
                return _PY_KINDS[py_type]
        if dataclasses.is_dataclass(annotation):
            return "json"
    return "string"


def sql_type_for(kind: str, dialect: DatabaseType, size: int = 0) -> str:
    """Column type for a Python *kind* in *dialect*; strings honour *size*."""
    table: Dict[str, str] = INVERSE_TYPE_TABLE[DatabaseType(dialect)]
    sql_type: str = table.get(kind, table["string"])
    if sql_type == "VARCHAR":
        length: int = size if size > 0 else _MAX_VARCHAR
        if length > _MAX_VARCHAR:
            return "TEXT"
        return f"VARCHAR({length})"
    return sql_type


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DYNAMIC_TYPE",
    "TypeMapping",
    "TYPE_TABLE",
    "INVERSE_TYPE_TABLE",
    "normalize_type",
    "lookup",
    "map_type",
    "is_integer_type",
    "parse_type_modifiers",
    "unwrap_optional",
    "python_type_kind",
    "sql_type_for",
]

logger.debug("sqlgen.typemap loaded with %d SQL types mapped.", len(TYPE_TABLE))
