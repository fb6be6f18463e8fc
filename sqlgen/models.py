# File: sqlgen/models.py
"""
sqlgen - Canonical Schema Model
================================
Pydantic V2 models for the dialect-independent schema representation that
all three catalog parsers converge to, plus the small option models that the
run configuration is assembled from.

    Schema ─┬─ Table ─┬─ Column
            │         ├─ Index
            │         └─ ForeignKey
            └─ ParseFailure

Schema entities are frozen: a parser builds them once and every downstream
component only reads them.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DatabaseType(str, enum.Enum):
    """The closed set of supported SQL dialects."""

    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"


class NamingRule(str, enum.Enum):
    """Identifier casing applied to generated names."""

    SNAKE = "snake"
    CAMEL = "camel"
    PASCAL = "pascal"


class Target(enum.Flag):
    """Artifacts a generation run produces; combine with ``|``."""

    NONE = 0
    MODEL = enum.auto()
    DAO = enum.auto()
    QUERY = enum.auto()
    MIGRATION = enum.auto()
    ALL = MODEL | DAO | QUERY | MIGRATION


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Schema entities
# ---------------------------------------------------------------------------


class Column(BaseModel):
    """A single table column as reported by the database catalog."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    data_type: str = Field(..., description="Raw dialect type, e.g. 'varchar(255)'.")
    go_type: str = Field(default="interface{}", description="Mapped Go type.")
    nullable: bool = Field(default=True)
    default: Optional[str] = Field(default=None, description="Default expression.")
    comment: str = Field(default="")
    is_primary_key: bool = Field(default=False)
    is_auto_increment: bool = Field(default=False)
    length: int = Field(default=0, ge=0)
    precision: int = Field(default=0, ge=0)
    scale: int = Field(default=0, ge=0)

    def __repr__(self) -> str:
        flags: str = " PK" if self.is_primary_key else ""
        flags += " AI" if self.is_auto_increment else ""
        flags += " NULL" if self.nullable else " NOT NULL"
        return f"<Column {self.name} {self.data_type}{flags}>"


class Index(BaseModel):
    """An index over one or more columns, in declared order."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    columns: List[str] = Field(default_factory=list)
    is_unique: bool = Field(default=False)
    is_primary: bool = Field(default=False)


class ForeignKey(BaseModel):
    """One column of a foreign key; composite keys share ``name`` across rows."""

    model_config = _FROZEN_CONFIG

    name: str = Field(default="")
    column: str = Field(..., min_length=1)
    ref_table: str = Field(..., min_length=1)
    ref_column: str = Field(..., min_length=1)
    on_delete: str = Field(default="NO ACTION")
    on_update: str = Field(default="NO ACTION")

    def __repr__(self) -> str:
        return f"<ForeignKey {self.column} -> {self.ref_table}.{self.ref_column}>"


class Table(BaseModel):
    """
    A table with its columns, keys and indexes.

    A table without columns is rejected, and every primary-key name must
    point at one of the table's columns.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    comment: str = Field(default="")
    columns: List[Column] = Field(..., min_length=1)
    primary_key: List[str] = Field(default_factory=list)
    indexes: List[Index] = Field(default_factory=list)
    foreign_keys: List[ForeignKey] = Field(default_factory=list)

    @model_validator(mode="after")
    def _primary_key_references_columns(self) -> "Table":
        known = {column.name for column in self.columns}
        missing: List[str] = [name for name in self.primary_key if name not in known]
        if missing:
            raise ValueError(
                f"primary key of table '{self.name}' references unknown "
                f"column(s): {', '.join(missing)}"
            )
        return self

    def column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def primary_columns(self) -> List[Column]:
        return [c for c in self.columns if c.name in self.primary_key]

    def __repr__(self) -> str:
        return f"<Table {self.name} ({len(self.columns)} columns)>"


class ParseFailure(BaseModel):
    """A table that could not be introspected during a full-database scan."""

    model_config = _FROZEN_CONFIG

    table: str
    message: str


class Schema(BaseModel):
    """Root of the canonical model. One instance per parse call."""

    model_config = _FROZEN_CONFIG

    name: str = Field(default="")
    database_type: DatabaseType
    tables: List[Table] = Field(default_factory=list)
    parsed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    failures: List[ParseFailure] = Field(
        default_factory=list,
        description="Tables dropped from a best-effort scan, with the reason.",
    )

    @computed_field  # type: ignore[misc]
    @property
    def table_names(self) -> List[str]:
        return [table.name for table in self.tables]

    def table(self, name: str) -> Optional[Table]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def topological_order(self) -> List[str]:
        """
        Table names ordered so referenced tables come before referencing ones.

        Kahn's algorithm over the foreign keys; references to tables outside
        the schema and self references are ignored. When a cycle remains, the
        leftover tables keep their declaration order.
        """
        in_degree: Dict[str, int] = {t.name: 0 for t in self.tables}
        dependants: Dict[str, List[str]] = {t.name: [] for t in self.tables}

        for table in self.tables:
            for fk in table.foreign_keys:
                if fk.ref_table == table.name or fk.ref_table not in dependants:
                    continue
                dependants[fk.ref_table].append(table.name)
                in_degree[table.name] += 1

        ready: List[str] = [name for name, degree in in_degree.items() if degree == 0]
        ordered: List[str] = []
        while ready:
            name: str = ready.pop(0)
            ordered.append(name)
            for dependant in dependants[name]:
                in_degree[dependant] -= 1
                if in_degree[dependant] == 0:
                    ready.append(dependant)

        if len(ordered) != len(self.tables):
            logger.warning(
                "Circular foreign keys in schema '%s'; remaining tables keep "
                "declaration order.",
                self.name,
            )
            seen = set(ordered)
            ordered.extend(t.name for t in self.tables if t.name not in seen)
        return ordered

    def __repr__(self) -> str:
        return (
            f"<Schema {self.name!r} {self.database_type.value} "
            f"{len(self.tables)} tables, {len(self.failures)} failures>"
        )


# ---------------------------------------------------------------------------
# Option models (assembled into sqlgen.config.Config)
# ---------------------------------------------------------------------------


class TableFilter(BaseModel):
    """Include / exclude patterns: ``prefix*``, ``*suffix``, ``*part*``."""

    model_config = _FROZEN_CONFIG

    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)


class SoftDeleteOptions(BaseModel):
    model_config = _FROZEN_CONFIG

    enabled: bool = False
    field: str = Field(default="deleted_at", min_length=1)


class TimestampOptions(BaseModel):
    model_config = _FROZEN_CONFIG

    enabled: bool = True
    created_field: str = Field(default="created_at", min_length=1)
    updated_field: str = Field(default="updated_at", min_length=1)


class VersionOptions(BaseModel):
    """Optimistic-lock column."""

    model_config = _FROZEN_CONFIG

    enabled: bool = False
    field: str = Field(default="version", min_length=1)


class TagOptions(BaseModel):
    """Which struct tags the entity template emits."""

    model_config = _FROZEN_CONFIG

    json_tag: bool = Field(default=True, alias="json")
    gorm: bool = True
    validate_tag: bool = Field(default=False, alias="validate")


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DatabaseType",
    "NamingRule",
    "Target",
    "Column",
    "Index",
    "ForeignKey",
    "Table",
    "ParseFailure",
    "Schema",
    "TableFilter",
    "SoftDeleteOptions",
    "TimestampOptions",
    "VersionOptions",
    "TagOptions",
]

logger.debug("sqlgen.models loaded.")
