# File: sqlgen/ddl.py
"""
sqlgen - Migration Script Renderer
===================================
Renders a whole ``Schema`` back into one DDL script (``schema.sql``).

Tables are emitted in foreign-key dependency order so the script can be
replayed top to bottom.  Each table block holds its columns, the primary
key, foreign-key constraints and the dialect's auto-increment spelling;
non-primary indexes follow as separate statements.

This renderer works on the canonical model directly, it does not share the
per-table ``TemplateData`` used by the Go templates.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from sqlgen.models import Column, DatabaseType, ForeignKey, Index, Schema, Table
from sqlgen.typemap import normalize_type

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.ddl")

MYSQL_TABLE_OPTIONS: str = "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"

_PG_SERIALS: Dict[str, str] = {
    "smallint": "SMALLSERIAL",
    "int2": "SMALLSERIAL",
    "integer": "SERIAL",
    "int": "SERIAL",
    "int4": "SERIAL",
    "bigint": "BIGSERIAL",
    "int8": "BIGSERIAL",
}

_DEFAULT_ACTION: str = "NO ACTION"


def _literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _constraint_groups(table: Table) -> List[List[ForeignKey]]:
    """Foreign-key rows merged per constraint name, in declaration order.

    Catalogs list a composite constraint as one row per column; rows without
    a name stand alone.
    """
    groups: Dict[str, List[ForeignKey]] = {}
    ordered: List[List[ForeignKey]] = []
    for fk in table.foreign_keys:
        if fk.name and fk.name in groups:
            groups[fk.name].append(fk)
            continue
        group: List[ForeignKey] = [fk]
        if fk.name:
            groups[fk.name] = group
        ordered.append(group)
    return ordered


class DDLRenderer:
    """Schema -> CREATE TABLE / CREATE INDEX script for one dialect."""

    def __init__(self, database_type: DatabaseType, header: str = "") -> None:
        self.database_type: DatabaseType = DatabaseType(database_type)
        self.header: str = header

    # -- Public API ---------------------------------------------------------

    def render(self, schema: Schema) -> str:
        blocks: List[str] = []
        title: str = f"-- Schema: {schema.name}" if schema.name else "-- Schema"
        preamble: List[str] = [line for line in (self.header, title) if line]
        preamble.append(f"-- Dialect: {self.database_type.value}")
        blocks.append("\n".join(preamble))

        for name in schema.topological_order():
            table: Optional[Table] = schema.table(name)
            if table is not None:
                blocks.append(self.render_table(table))

        logger.debug(
            "Rendered DDL for %d tables (%s).", len(schema.tables), self.database_type.value
        )
        return "\n\n".join(blocks) + "\n"

    def render_table(self, table: Table) -> str:
        inline_key: bool = self._inline_sqlite_key(table)
        lines: List[str] = [
            "    " + self._column_definition(column, inline_key) for column in table.columns
        ]
        if table.primary_key and not inline_key:
            lines.append(f"    PRIMARY KEY ({self._names(table.primary_key)})")
        for group in _constraint_groups(table):
            lines.append("    " + self._foreign_key(table, group))

        header: str = f"-- Table: {table.name}"
        if table.comment:
            header += f" ({' '.join(table.comment.split())})"
        statements: List[str] = [
            f"{header}\nCREATE TABLE {self.quote(table.name)} (\n"
            + ",\n".join(lines)
            + f"\n){self._table_suffix(table)};"
        ]
        statements.extend(self._comment_statements(table))
        statements.extend(self._index_statements(table))
        return "\n".join(statements)

    # -- Dialect details ----------------------------------------------------

    def quote(self, name: str) -> str:
        if self.database_type is DatabaseType.MYSQL:
            return "`" + name.replace("`", "``") + "`"
        return '"' + name.replace('"', '""') + '"'

    def _names(self, names: List[str]) -> str:
        return ", ".join(self.quote(n) for n in names)

    def _inline_sqlite_key(self, table: Table) -> bool:
        """SQLite spells auto increment only as an inline ``INTEGER PRIMARY KEY``."""
        if self.database_type is not DatabaseType.SQLITE or len(table.primary_key) != 1:
            return False
        column: Optional[Column] = table.column(table.primary_key[0])
        return column is not None and column.is_auto_increment

    def _column_type(self, column: Column) -> str:
        if self.database_type is DatabaseType.POSTGRES and column.is_auto_increment:
            return _PG_SERIALS.get(normalize_type(column.data_type), "BIGSERIAL")
        return column.data_type or "TEXT"

    def _column_definition(self, column: Column, inline_key: bool) -> str:
        if inline_key and column.is_primary_key:
            return f"{self.quote(column.name)} INTEGER PRIMARY KEY AUTOINCREMENT"

        parts: List[str] = [self.quote(column.name), self._column_type(column)]
        if not column.nullable:
            parts.append("NOT NULL")
        if column.is_auto_increment and self.database_type is DatabaseType.MYSQL:
            parts.append("AUTO_INCREMENT")
        if column.default is not None and not column.is_auto_increment:
            parts.append(f"DEFAULT {column.default}")
        if column.comment and self.database_type is DatabaseType.MYSQL:
            parts.append(f"COMMENT {_literal(column.comment)}")
        return " ".join(parts)

    def _foreign_key(self, table: Table, group: List[ForeignKey]) -> str:
        fk: ForeignKey = group[0]
        name: str = fk.name or f"fk_{table.name}_{fk.column}"
        columns: str = self._names([member.column for member in group])
        targets: str = self._names([member.ref_column for member in group])
        clause: str = (
            f"CONSTRAINT {self.quote(name)} FOREIGN KEY ({columns}) "
            f"REFERENCES {self.quote(fk.ref_table)} ({targets})"
        )
        if fk.on_delete and fk.on_delete.upper() != _DEFAULT_ACTION:
            clause += f" ON DELETE {fk.on_delete.upper()}"
        if fk.on_update and fk.on_update.upper() != _DEFAULT_ACTION:
            clause += f" ON UPDATE {fk.on_update.upper()}"
        return clause

    def _table_suffix(self, table: Table) -> str:
        if self.database_type is not DatabaseType.MYSQL:
            return ""
        suffix: str = f" {MYSQL_TABLE_OPTIONS}"
        if table.comment:
            suffix += f" COMMENT={_literal(table.comment)}"
        return suffix

    def _comment_statements(self, table: Table) -> List[str]:
        if self.database_type is not DatabaseType.POSTGRES:
            return []
        statements: List[str] = []
        if table.comment:
            statements.append(
                f"COMMENT ON TABLE {self.quote(table.name)} IS {_literal(table.comment)};"
            )
        for column in table.columns:
            if column.comment:
                statements.append(
                    f"COMMENT ON COLUMN {self.quote(table.name)}.{self.quote(column.name)} "
                    f"IS {_literal(column.comment)};"
                )
        return statements

    def _index_name(self, table: Table, index: Index) -> str:
        if self.database_type is DatabaseType.SQLITE and index.name.startswith("sqlite_autoindex"):
            return f"uk_{table.name}_{'_'.join(index.columns)}"
        return index.name

    def _index_statements(self, table: Table) -> List[str]:
        # MySQL backs every foreign key with an index of the same name.
        implicit: Set[str] = (
            {fk.name for fk in table.foreign_keys}
            if self.database_type is DatabaseType.MYSQL
            else set()
        )
        statements: List[str] = []
        for index in table.indexes:
            if index.is_primary or not index.columns or index.name in implicit:
                continue
            unique: str = "UNIQUE " if index.is_unique else ""
            statements.append(
                f"CREATE {unique}INDEX {self.quote(self._index_name(table, index))} "
                f"ON {self.quote(table.name)} ({self._names(index.columns)});"
            )
        return statements

    def __repr__(self) -> str:
        return f"<DDLRenderer {self.database_type.value}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = ["MYSQL_TABLE_OPTIONS", "DDLRenderer"]

logger.debug("sqlgen.ddl loaded.")
