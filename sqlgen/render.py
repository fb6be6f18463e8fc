# File: sqlgen/render.py
"""
sqlgen - Template Data Builder
===============================
Flattens a canonical ``Table`` plus the run ``Config`` into the
``TemplateData`` record the Go templates consume.  All naming, tag and
column-subset decisions are made here so the templates stay declarative.

Column subsets:

* ``insert_columns``  every column except auto-increment ones and the
                      soft-delete marker.
* ``update_columns``  insert columns minus primary keys, the created-at
                      timestamp and the optimistic-lock version.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from sqlgen.config import Config
from sqlgen.models import Column, SoftDeleteOptions, Table, TagOptions, TimestampOptions
from sqlgen.naming import convert_name, to_go_field_name, to_singular

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.render")

HIDDEN_JSON_COLUMNS: Set[str] = {"password"}

# Package qualifier in a Go type -> import path.
GO_PACKAGE_IMPORTS: Dict[str, str] = {
    "time.": "time",
    "json.": "encoding/json",
}

_GO_INTEGERS: Set[str] = {
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64",
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnData:
    """Per-column rendering information."""

    name: str
    field_name: str
    go_type: str
    base_type: str
    data_type: str
    json_tag: str
    gorm_tag: str
    validate_tag: str
    struct_tag: str
    comment: str = ""
    nullable: bool = True
    is_primary_key: bool = False
    is_auto_increment: bool = False


@dataclass(frozen=True)
class TemplateData:
    """Everything one table's templates need."""

    table_name: str
    table_comment: str
    entity_name: str
    file_name: str
    package_name: str
    header: str
    dialect: str
    imports: List[str] = field(default_factory=list)
    columns: List[ColumnData] = field(default_factory=list)
    insert_columns: List[ColumnData] = field(default_factory=list)
    update_columns: List[ColumnData] = field(default_factory=list)
    primary_key: Optional[ColumnData] = None
    version_column: Optional[ColumnData] = None
    soft_delete: SoftDeleteOptions = field(default_factory=SoftDeleteOptions)
    timestamp: TimestampOptions = field(default_factory=TimestampOptions)
    tags: TagOptions = field(default_factory=TagOptions)


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def _one_line(text: str) -> str:
    return " ".join(text.split())


def _tag_value(text: str) -> str:
    """Make *text* safe inside a double-quoted Go struct tag value."""
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("`", "'")


def json_tag_for(column: Column, config: Config) -> str:
    """
    ``json`` tag value: the key follows ``column_name_rule``, ``password``
    is never serialised, nullable columns get ``omitempty``.
    """
    if column.name.lower() in HIDDEN_JSON_COLUMNS:
        return "-"
    key: str = convert_name(column.name, config.column_name_rule)
    return f"{key},omitempty" if column.nullable else key


def gorm_tag_for(column: Column, config: Config, unique_columns: Set[str]) -> str:
    parts: List[str] = [f"column:{column.name}"]
    if column.data_type:
        parts.append(f"type:{column.data_type}")
    if column.is_primary_key:
        parts.append("primaryKey")
    if column.is_auto_increment:
        parts.append("autoIncrement")
    if not column.nullable and not column.is_primary_key:
        parts.append("not null")
    if column.name in unique_columns:
        parts.append("uniqueIndex")
    if column.default is not None and not column.is_auto_increment:
        parts.append(f"default:{column.default}")
    if config.timestamp.enabled:
        if column.name == config.timestamp.created_field:
            parts.append("autoCreateTime")
        elif column.name == config.timestamp.updated_field:
            parts.append("autoUpdateTime")
    return _tag_value(";".join(parts))


def validate_tag_for(column: Column, base_type: str) -> str:
    if column.is_auto_increment:
        return ""
    rules: List[str] = []
    if column.nullable:
        rules.append("omitempty")
    elif column.default is None:
        rules.append("required")
    if base_type == "string" and column.length > 0:
        rules.append(f"max={column.length}")
    return ",".join(rules)


def struct_tag(json_tag: str, gorm_tag: str, validate_tag: str, tags: TagOptions) -> str:
    parts: List[str] = []
    if tags.json_tag:
        parts.append(f'json:"{json_tag}"')
    if tags.gorm:
        parts.append(f'gorm:"{gorm_tag}"')
    if tags.validate_tag and validate_tag:
        parts.append(f'validate:"{validate_tag}"')
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _unique_columns(table: Table) -> Set[str]:
    return {
        index.columns[0]
        for index in table.indexes
        if index.is_unique and not index.is_primary and len(index.columns) == 1
    }


def build_column_data(column: Column, config: Config, unique_columns: Set[str]) -> ColumnData:
    base_type: str = column.go_type.lstrip("*")
    json_tag: str = json_tag_for(column, config)
    gorm_tag: str = gorm_tag_for(column, config, unique_columns)
    validate_tag: str = validate_tag_for(column, base_type)
    return ColumnData(
        name=column.name,
        field_name=to_go_field_name(column.name),
        go_type=column.go_type,
        base_type=base_type,
        data_type=column.data_type,
        json_tag=json_tag,
        gorm_tag=gorm_tag,
        validate_tag=validate_tag,
        struct_tag=struct_tag(json_tag, gorm_tag, validate_tag, config.tags),
        comment=_one_line(column.comment),
        nullable=column.nullable,
        is_primary_key=column.is_primary_key,
        is_auto_increment=column.is_auto_increment,
    )


def _imports(columns: List[ColumnData]) -> List[str]:
    paths: Set[str] = set()
    for column in columns:
        for qualifier, import_path in GO_PACKAGE_IMPORTS.items():
            if column.base_type.startswith(qualifier):
                paths.add(import_path)
    return sorted(paths)


def build_template_data(table: Table, config: Config) -> TemplateData:
    """Assemble the rendering record for *table* under *config*."""
    unique_columns: Set[str] = _unique_columns(table)
    columns: List[ColumnData] = [
        build_column_data(column, config, unique_columns) for column in table.columns
    ]

    soft_delete: SoftDeleteOptions = config.soft_delete
    if soft_delete.enabled and table.column(soft_delete.field) is None:
        logger.debug(
            "Soft delete disabled for %s: no %s column.", table.name, soft_delete.field
        )
        soft_delete = soft_delete.model_copy(update={"enabled": False})

    version_column: Optional[ColumnData] = None
    if config.version.enabled:
        version_column = next(
            (c for c in columns if c.name == config.version.field and c.go_type in _GO_INTEGERS),
            None,
        )
        if version_column is None:
            logger.debug(
                "Optimistic lock disabled for %s: no integer %s column.",
                table.name,
                config.version.field,
            )

    excluded: Set[str] = {soft_delete.field} if soft_delete.enabled else set()
    insert_columns: List[ColumnData] = [
        c for c in columns if not c.is_auto_increment and c.name not in excluded
    ]
    immutable: Set[str] = set()
    if config.timestamp.enabled:
        immutable.add(config.timestamp.created_field)
    if version_column is not None:
        immutable.add(version_column.name)
    update_columns: List[ColumnData] = [
        c for c in insert_columns if not c.is_primary_key and c.name not in immutable
    ]

    primary_key: Optional[ColumnData] = next(
        (c for c in columns if table.primary_key and c.name == table.primary_key[0]),
        None,
    )

    return TemplateData(
        table_name=table.name,
        table_comment=_one_line(table.comment),
        entity_name=to_go_field_name(to_singular(table.name)),
        file_name=convert_name(table.name, config.table_name_rule),
        package_name=config.package_name,
        header=config.header,
        dialect=config.database_type.value,
        imports=_imports(columns),
        columns=columns,
        insert_columns=insert_columns,
        update_columns=update_columns,
        primary_key=primary_key,
        version_column=version_column,
        soft_delete=soft_delete,
        timestamp=config.timestamp,
        tags=config.tags,
    )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "HIDDEN_JSON_COLUMNS",
    "ColumnData",
    "TemplateData",
    "json_tag_for",
    "gorm_tag_for",
    "validate_tag_for",
    "struct_tag",
    "build_column_data",
    "build_template_data",
]

logger.debug("sqlgen.render loaded.")
